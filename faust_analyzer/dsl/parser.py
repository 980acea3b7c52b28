"""Recursive-descent Faust parser with statement-level error recovery."""

import logging
from pathlib import Path
from ..core.config import DEFAULT_MAX_NESTING_DEPTH
from ..core.deadline import Deadline
from ..core.types import Diagnostic, DiagnosticKind, Location, Severity
from .ast import (
    CompositionOp,
    Composition,
    Declaration,
    Definition,
    FunctionCall,
    Identifier,
    ImportStatement,
    Node,
    NumberLiteral,
    OPS_BY_SYMBOL,
    Program,
    StringLiteral,
    WithBlock,
)
from .lexer import Token, TokenKind, Tokenizer


logger = logging.getLogger(__name__)

# Infix arithmetic binds tighter than every composition operator.
INFIX_PRECEDENCE = {
    "<": 5, ">": 5, "<=": 5, ">=": 5, "==": 5, "!=": 5,
    "+": 6, "-": 6, "|": 6,
    "*": 7, "/": 7, "%": 7, "&": 7, "<<": 7, ">>": 7,
    "@": 8, "^": 8,
}

BOX_OPERATORS = frozenset(INFIX_PRECEDENCE) | {"!"}


def _describe(token: Token | None) -> str:
    if token is None:
        return "end of input"
    if token.kind == TokenKind.STRING:
        return f"string {token.text}"
    return f"'{token.text}'"


def _unquote(text: str) -> str:
    return text[1:-1].replace('\\"', '"').replace("\\\\", "\\")


def _number_value(text: str) -> float:
    if text[:2] in ("0x", "0X"):
        return float(int(text, 16))
    return float(text)


class Parser:
    """Parses a token stream into a ``Program``.

    Syntax errors never abort the parse: the offending statement is marked
    invalid, the parser skips to the next statement boundary (a top-level
    ``;`` or the ``}`` closing a ``with`` block) and carries on, so one pass
    reports every independent error in the file.
    """

    def __init__(
        self,
        tokens: list[Token],
        max_depth: int = DEFAULT_MAX_NESTING_DEPTH,
        deadline: Deadline | None = None,
    ):
        self.tokens = tokens
        self.max_depth = max_depth
        self.deadline = deadline or Deadline()
        self.pos = 0
        self.depth = 0
        self.errors: list[Diagnostic] = []
        self._next_id = 0
        self._last: Token | None = None

    # -- token helpers -------------------------------------------------

    def _peek(self, ahead: int = 0) -> Token | None:
        index = self.pos + ahead
        if index < len(self.tokens):
            return self.tokens[index]
        return None

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        self.pos += 1
        self._last = token
        return token

    def _at_punct(self, text: str) -> bool:
        token = self._peek()
        return token is not None and token.is_punct(text)

    def _node(self, cls, token: Token | None, **fields) -> Node:
        self._next_id += 1
        line, column = self._position(token)
        return cls(node_id=self._next_id, line=line, column=column, **fields)

    def _position(self, token: Token | None) -> tuple[int, int]:
        if token is not None:
            return token.line, token.column
        if self._last is not None:
            return self._last.end_line, self._last.end_column
        return 1, 1

    def _error(
        self,
        message: str,
        token: Token | None = None,
        at: tuple[int, int] | None = None,
        related: list[Location] | None = None,
        **data,
    ) -> None:
        line, column = at if at is not None else self._position(token)
        self.errors.append(Diagnostic(
            kind=DiagnosticKind.SYNTAX_ERROR,
            severity=Severity.ERROR,
            line=line,
            column=column,
            message=message,
            related_locations=related or [],
            data=data,
        ))

    def _invalid(self, token: Token | None) -> Node:
        node = self._node(Identifier, token, name="")
        node.invalid = True
        return node

    def _synchronize(self) -> None:
        """Skip to the next statement boundary without crossing a closing ``}``."""
        depth = 0
        while (token := self._peek()) is not None:
            if token.is_punct("(", "{"):
                depth += 1
            elif token.is_punct(")"):
                depth = max(0, depth - 1)
            elif token.is_punct("}"):
                if depth == 0:
                    return
                depth -= 1
            elif token.is_punct(";") and depth == 0:
                self._advance()
                return
            self._advance()

    # -- statements ----------------------------------------------------

    def parse(self) -> tuple[Program, list[Diagnostic]]:
        program = Program(node_id=0, line=1, column=1)

        while (token := self._peek()) is not None:
            self.deadline.check()
            if token.is_keyword("import"):
                statement = self._import()
                if statement is not None:
                    program.imports.append(statement)
            elif token.is_keyword("declare"):
                statement = self._declare()
                if statement is not None:
                    program.declarations.append(statement)
            elif token.kind == TokenKind.IDENTIFIER:
                program.definitions.append(self._definition())
            elif token.is_punct("}"):
                self._error("Unmatched '}'", token, found="}")
                self._advance()
            else:
                self._error(f"Unexpected {_describe(token)} at top level", token, found=token.text)
                self._synchronize()

        logger.debug("parsed %d definitions, %d imports (%d syntax errors)",
                     len(program.definitions), len(program.imports), len(self.errors))
        return program, self.errors

    def _expect_semicolon(self, what: str) -> bool:
        """Consume a terminating ``;``; report and recover when it is missing."""
        token = self._peek()
        if token is not None and token.is_punct(";"):
            self._advance()
            return True

        previous = self._last
        end = (previous.end_line, previous.end_column) if previous else self._position(token)
        if token is not None and token.is_punct(")"):
            self._error("Unmatched ')'", token, found=")")
            self._synchronize()
            return False

        self._error(f"Expected ';' after {what}", at=end, expected=";", found=_describe(token))
        starts_new_line = token is not None and previous is not None and token.line > previous.end_line
        if token is None or token.is_punct("}"):
            return False
        if starts_new_line and (token.kind == TokenKind.IDENTIFIER or token.kind == TokenKind.KEYWORD):
            return False
        self._synchronize()
        return False

    def _import(self) -> ImportStatement | None:
        keyword = self._advance()
        if not self._at_punct("("):
            self._error("Expected '(' after import", self._peek(), expected="(")
            self._synchronize()
            return None
        self._advance()

        token = self._peek()
        if token is None or token.kind != TokenKind.STRING:
            self._error("Expected library name as a string", token, expected="string")
            self._synchronize()
            return None
        path = _unquote(self._advance().text)

        if not self._at_punct(")"):
            self._error("Expected ')' after import path", self._peek(), expected=")")
            self._synchronize()
        else:
            self._advance()
            self._expect_semicolon("import statement")
        return self._node(ImportStatement, keyword, path=path)

    def _declare(self) -> Declaration | None:
        keyword = self._advance()
        names: list[str] = []
        while (token := self._peek()) is not None and token.kind == TokenKind.IDENTIFIER:
            names.append(self._advance().text)
        token = self._peek()
        if not names or token is None or token.kind != TokenKind.STRING:
            self._error("Expected 'declare key \"value\";'", token, expected="string")
            self._synchronize()
            return None
        value = _unquote(self._advance().text)
        self._expect_semicolon("declaration")
        return self._node(Declaration, keyword, key=" ".join(names), value=value)

    def _definition(self) -> Definition:
        name_token = self._advance()
        definition = self._node(Definition, name_token, name=name_token.text)
        errors_before = len(self.errors)

        if self._at_punct("("):
            definition.params = self._params()
        if len(self.errors) > errors_before:
            definition.invalid = True
            self._synchronize()
            return definition

        token = self._peek()
        if token is None or not token.is_op("="):
            self._error(f"Expected '=' in definition of '{name_token.text}'", token,
                        expected="=", found=_describe(token))
            definition.invalid = True
            self._synchronize()
            return definition
        self._advance()

        definition.body = self._expression()
        if definition.body.invalid:
            definition.invalid = True
            self._synchronize()
        elif not self._expect_semicolon(f"definition of '{name_token.text}'"):
            definition.invalid = True

        if self._last is not None:
            definition.end_line = self._last.end_line
            definition.end_column = self._last.end_column
        return definition

    def _params(self) -> list[str]:
        self._advance()
        params: list[str] = []
        while True:
            token = self._peek()
            if token is None or token.kind != TokenKind.IDENTIFIER or "." in token.text:
                self._error("Expected parameter name", token, found=_describe(token))
                return params
            params.append(self._advance().text)
            token = self._peek()
            if token is not None and token.is_op(","):
                self._advance()
                continue
            if token is not None and token.is_punct(")"):
                self._advance()
                return params
            self._error("Expected ',' or ')' in parameter list", token, found=_describe(token))
            return params

    # -- expressions ---------------------------------------------------

    def _expression(self, allow_par: bool = True) -> Node:
        self.depth += 1
        try:
            if self.depth > self.max_depth:
                token = self._peek()
                self._error("Expression nested too deeply", token, limit=self.max_depth)
                return self._invalid(token)
            node = self._composition(1, allow_par)
            while not node.invalid and (token := self._peek()) is not None and token.is_keyword("with"):
                node = self._with_block(node)
            return node
        finally:
            self.depth -= 1

    def _composition_op(self, token: Token | None, allow_par: bool) -> CompositionOp | None:
        if token is None or token.kind != TokenKind.OPERATOR:
            return None
        op = OPS_BY_SYMBOL.get(token.text)
        if op == CompositionOp.PAR and not allow_par:
            return None
        return op

    def _composition(self, min_precedence: int, allow_par: bool) -> Node:
        left = self._infix(0)
        while not left.invalid:
            token = self._peek()
            op = self._composition_op(token, allow_par)
            if op is None or op.precedence < min_precedence:
                break
            self._advance()
            right = self._composition(op.precedence + 1, allow_par)
            left = self._node(Composition, token, operator=op, left=left, right=right)
            if right.invalid:
                left.invalid = True
        return left

    def _infix(self, min_precedence: int) -> Node:
        left = self._postfix()
        while not left.invalid:
            token = self._peek()
            if token is None or token.kind != TokenKind.OPERATOR:
                break
            precedence = INFIX_PRECEDENCE.get(token.text)
            if precedence is None or precedence < min_precedence:
                break
            self._advance()
            right = self._infix(precedence + 1)
            left = self._desugar_infix(token, left, right)
        return left

    def _desugar_infix(self, token: Token, left: Node, right: Node) -> Node:
        """``a + b`` is ``(a, b) : +``."""
        operands = self._node(Composition, token, operator=CompositionOp.PAR, left=left, right=right)
        box = self._node(Identifier, token, name=token.text)
        node = self._node(Composition, token, operator=CompositionOp.SEQ, left=operands, right=box)
        node.invalid = operands.invalid = right.invalid
        return node

    def _postfix(self) -> Node:
        node = self._primary()
        while not node.invalid and (token := self._peek()) is not None and token.is_op("'"):
            self._advance()
            mem = self._node(Identifier, token, name="mem")
            node = self._node(Composition, token, operator=CompositionOp.SEQ, left=node, right=mem)
        return node

    def _primary(self) -> Node:
        self.deadline.check()
        token = self._peek()
        if token is None:
            self._error("Unexpected end of input, expected an expression", None, expected="expression")
            return self._invalid(None)

        if token.kind == TokenKind.IDENTIFIER:
            self._advance()
            if self._at_punct("("):
                return self._call(token)
            return self._node(Identifier, token, name=token.text)

        if token.kind == TokenKind.NUMBER:
            self._advance()
            return self._node(NumberLiteral, token, value=_number_value(token.text), text=token.text)

        if token.kind == TokenKind.STRING:
            self._advance()
            return self._node(StringLiteral, token, value=_unquote(token.text))

        if token.is_punct("("):
            self._advance()
            inner = self._expression()
            if inner.invalid:
                return inner
            closing = self._peek()
            if closing is None or not closing.is_punct(")"):
                self._error(
                    f"Expected ')' to close '(' opened at line {token.line}, column {token.column}",
                    closing,
                    related=[Location(line=token.line, column=token.column)],
                    expected=")",
                    found=_describe(closing),
                )
                return self._invalid(closing)
            self._advance()
            return inner

        if token.is_op("-"):
            following = self._peek(1)
            if following is not None and following.kind == TokenKind.NUMBER:
                self._advance()
                self._advance()
                return self._node(NumberLiteral, token, value=-_number_value(following.text),
                                  text=f"-{following.text}")

        if token.kind == TokenKind.OPERATOR and token.text in BOX_OPERATORS:
            self._advance()
            if token.text != "!" and self._at_punct("("):
                return self._call(token)
            return self._node(Identifier, token, name=token.text)

        self._error(f"Unexpected {_describe(token)}, expected an expression", token,
                    expected="expression", found=token.text)
        return self._invalid(token)

    def _call(self, name_token: Token) -> Node:
        opening = self._advance()
        call = self._node(FunctionCall, name_token, name=name_token.text)
        if self._at_punct(")"):
            self._error(f"Empty argument list in call to '{name_token.text}'", self._peek())
            self._advance()
            call.invalid = True
            return call

        while True:
            argument = self._expression(allow_par=False)
            call.args.append(argument)
            if argument.invalid:
                call.invalid = True
                return call
            token = self._peek()
            if token is not None and token.is_op(","):
                self._advance()
                continue
            if token is not None and token.is_punct(")"):
                self._advance()
                return call
            self._error(
                f"Expected ',' or ')' in call to '{name_token.text}'",
                token,
                related=[Location(line=opening.line, column=opening.column)],
                expected=")",
                found=_describe(token),
            )
            call.invalid = True
            return call

    def _with_block(self, body: Node) -> Node:
        keyword = self._advance()
        opening = self._peek()
        if opening is None or not opening.is_punct("{"):
            self._error("Expected '{' after 'with'", opening, expected="{", found=_describe(opening))
            return self._invalid(opening)
        self._advance()

        block = self._node(WithBlock, keyword, body=body)
        while (token := self._peek()) is not None and not token.is_punct("}"):
            self.deadline.check()
            if token.kind == TokenKind.IDENTIFIER:
                block.local_defs.append(self._definition())
            else:
                self._error(f"Unexpected {_describe(token)} in 'with' block", token, found=token.text)
                self._synchronize()

        if self._peek() is None:
            self._error(
                f"Unclosed '{{' opened at line {opening.line}, column {opening.column}",
                None,
                related=[Location(line=opening.line, column=opening.column)],
                expected="}",
            )
            block.invalid = True
            return block
        self._advance()
        return block


def parse(tokens: list[Token], max_depth: int = DEFAULT_MAX_NESTING_DEPTH) -> tuple[Program, list[Diagnostic]]:
    """Parse tokens into a program; returns the AST and syntax errors."""
    return Parser(tokens, max_depth=max_depth).parse()


def parse_source(text: str) -> tuple[Program, list[Diagnostic]]:
    """Tokenize and parse ``text``; lexical errors come first in the list."""
    tokens, lex_errors = Tokenizer().tokenize(text)
    program, parse_errors = parse(tokens)
    return program, lex_errors + parse_errors


def parse_file(path: Path) -> tuple[Program, list[Diagnostic]]:
    """Parse a Faust file."""
    with open(path) as f:
        content = f.read()
    return parse_source(content)
