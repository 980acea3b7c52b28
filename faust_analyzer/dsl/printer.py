"""Pretty-printer turning an AST back into Faust source."""

from .ast import (
    Composition,
    CompositionOp,
    Declaration,
    Definition,
    FunctionCall,
    Identifier,
    ImportStatement,
    Node,
    NumberLiteral,
    Program,
    StringLiteral,
    WithBlock,
)


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _number(node: NumberLiteral) -> str:
    if node.text:
        return node.text
    if node.value == int(node.value):
        return str(int(node.value))
    return repr(node.value)


def _chain(node: Composition) -> list[Node]:
    """Operands of a left-nested run of one operator, left to right."""
    rights = []
    while isinstance(node.left, Composition) and node.left.operator == node.operator:
        rights.append(node.right)
        node = node.left
    rights.append(node.right)
    return [node.left, *reversed(rights)]


def _operand(node: Node, text: str) -> str:
    if isinstance(node, (Composition, WithBlock)):
        return f"({text})"
    return text


def _argument(node: Node, text: str) -> str:
    if isinstance(node, WithBlock) or (
        isinstance(node, Composition) and node.operator == CompositionOp.PAR
    ):
        return f"({text})"
    return text


def _parts(node: Node) -> list[Node]:
    if isinstance(node, FunctionCall):
        return list(node.args)
    if isinstance(node, Composition):
        return _chain(node)
    if isinstance(node, WithBlock):
        return [node.body, *node.local_defs]
    if isinstance(node, Definition):
        return [node.body] if node.body is not None else []
    if isinstance(node, Program):
        return [*node.imports, *node.declarations, *node.definitions]
    return []


def _render(node: Node, printed: dict[int, str]) -> str:
    if isinstance(node, Identifier):
        return node.name
    if isinstance(node, NumberLiteral):
        return _number(node)
    if isinstance(node, StringLiteral):
        return _quote(node.value)
    if isinstance(node, FunctionCall):
        args = ", ".join(_argument(arg, printed[id(arg)]) for arg in node.args)
        return f"{node.name}({args})"
    if isinstance(node, Composition):
        separator = f" {node.operator.symbol} "
        return separator.join(_operand(part, printed[id(part)]) for part in _chain(node))
    if isinstance(node, WithBlock):
        locals_text = " ".join(printed[id(d)] for d in node.local_defs)
        return f"{printed[id(node.body)]} with {{ {locals_text} }}"
    if isinstance(node, Definition):
        params = f"({', '.join(node.params)})" if node.params else ""
        body = printed[id(node.body)] if node.body is not None else ""
        return f"{node.name}{params} = {body};"
    if isinstance(node, ImportStatement):
        return f"import({_quote(node.path)});"
    if isinstance(node, Declaration):
        return f"declare {node.key} {_quote(node.value)};"
    if isinstance(node, Program):
        return "\n".join(printed[id(part)] for part in _parts(node)) + "\n"
    raise TypeError(f"cannot print {type(node).__name__}")


def to_source(node: Node) -> str:
    """Render ``node`` as source text that parses back to an equal AST.

    Nested compositions are parenthesized except along a left-nested run of
    one operator, which prints flat since every operator associates left.
    Rendering is iterative, so chains of any length print.
    """
    printed: dict[int, str] = {}
    stack: list[tuple[Node, bool]] = [(node, False)]
    while stack:
        current, ready = stack.pop()
        if not ready:
            stack.append((current, True))
            stack.extend((part, False) for part in _parts(current))
            continue
        printed[id(current)] = _render(current, printed)
    return printed[id(node)]
