"""Tokenizer built on a Lark lexical grammar."""

import bisect
import logging
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from lark import Lark, TextSlice, UnexpectedCharacters
from ..core.deadline import Deadline
from ..core.types import Diagnostic, DiagnosticKind, Severity


GRAMMAR_PATH = Path(__file__).parent / "tokens.lark"

KEYWORDS = frozenset({"import", "with", "declare"})

logger = logging.getLogger(__name__)


class TokenKind(str, Enum):
    KEYWORD = "keyword"
    IDENTIFIER = "identifier"
    NUMBER = "number"
    STRING = "string"
    OPERATOR = "operator"
    PUNCTUATION = "punctuation"


@dataclass(frozen=True)
class Token:
    """A lexical token with its 1-based start and end position."""
    kind: TokenKind
    text: str
    line: int
    column: int
    end_line: int
    end_column: int

    def is_op(self, *texts: str) -> bool:
        return self.kind == TokenKind.OPERATOR and self.text in texts

    def is_punct(self, *texts: str) -> bool:
        return self.kind == TokenKind.PUNCTUATION and self.text in texts

    def is_keyword(self, text: str) -> bool:
        return self.kind == TokenKind.KEYWORD and self.text == text


_KIND_BY_TERMINAL = {
    "IDENT": TokenKind.IDENTIFIER,
    "NUMBER": TokenKind.NUMBER,
    "STRING": TokenKind.STRING,
    "OPERATOR": TokenKind.OPERATOR,
    "PUNCT": TokenKind.PUNCTUATION,
}


@lru_cache(maxsize=1)
def _build_lexer() -> Lark:
    with open(GRAMMAR_PATH) as f:
        grammar = f.read()
    return Lark(grammar, parser="lalr", lexer="basic")


class _Positions:
    """Maps absolute offsets of a text to (line, column)."""

    def __init__(self, text: str):
        self.line_starts = [0]
        for index, char in enumerate(text):
            if char == "\n":
                self.line_starts.append(index + 1)

    def at(self, offset: int) -> tuple[int, int]:
        line_index = bisect.bisect_right(self.line_starts, offset) - 1
        return line_index + 1, offset - self.line_starts[line_index] + 1


class Tokenizer:
    """Turns Faust source into tokens, never stopping at bad input.

    An unrecognized character becomes a ``LexicalError`` and scanning resumes
    at the following character, so the whole text is always consumed.
    """

    def __init__(self):
        self.lexer = _build_lexer()

    def tokenize(self, text: str, deadline: Deadline | None = None) -> tuple[list[Token], list[Diagnostic]]:
        deadline = deadline or Deadline()
        tokens: list[Token] = []
        errors: list[Diagnostic] = []
        positions = _Positions(text)
        offset = 0

        while offset < len(text):
            deadline.check()
            try:
                # token and error positions are absolute in the sliced text
                for raw in self.lexer.lex(TextSlice(text, offset, len(text))):
                    self._emit(raw, raw.start_pos, positions, tokens, errors)
                break
            except UnexpectedCharacters as exc:
                bad_offset = exc.pos_in_stream
                line, column = positions.at(bad_offset)
                char = text[bad_offset]
                errors.append(Diagnostic(
                    kind=DiagnosticKind.LEXICAL_ERROR,
                    severity=Severity.ERROR,
                    line=line,
                    column=column,
                    message=self._describe(char),
                    data={"char": char},
                ))
                offset = bad_offset + 1

        logger.debug("tokenized %d chars into %d tokens (%d lexical errors)",
                     len(text), len(tokens), len(errors))
        return tokens, errors

    def _emit(
        self,
        raw,
        start: int,
        positions: _Positions,
        tokens: list[Token],
        errors: list[Diagnostic],
    ) -> None:
        text = str(raw)
        line, column = positions.at(start)
        end_line, end_column = positions.at(start + len(text))

        if raw.type == "LINE_COMMENT":
            return
        if raw.type == "BLOCK_COMMENT":
            if not text.endswith("*/") or len(text) < 4:
                errors.append(Diagnostic(
                    kind=DiagnosticKind.LEXICAL_ERROR,
                    severity=Severity.ERROR,
                    line=line,
                    column=column,
                    message="Unterminated block comment",
                    suggestion="Close the comment with '*/'",
                ))
            return

        kind = _KIND_BY_TERMINAL[raw.type]
        if kind == TokenKind.IDENTIFIER and text in KEYWORDS:
            kind = TokenKind.KEYWORD
        tokens.append(Token(kind, text, line, column, end_line, end_column))

    def _describe(self, char: str) -> str:
        if char == '"':
            return "Unterminated string literal"
        return f"Unexpected character {char!r}"


def tokenize(text: str, deadline: Deadline | None = None) -> tuple[list[Token], list[Diagnostic]]:
    """Tokenize ``text``; returns the tokens and any lexical errors."""
    return Tokenizer().tokenize(text, deadline)
