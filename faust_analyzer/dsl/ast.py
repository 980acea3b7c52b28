"""AST node definitions for Faust parsing."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator


class CompositionOp(str, Enum):
    SEQ = "seq"
    PAR = "par"
    SPLIT = "split"
    MERGE = "merge"
    RECUR = "recur"

    @property
    def symbol(self) -> str:
        return _OP_SYMBOLS[self]

    @property
    def precedence(self) -> int:
        return _OP_PRECEDENCE[self]


_OP_SYMBOLS = {
    CompositionOp.SEQ: ":",
    CompositionOp.PAR: ",",
    CompositionOp.SPLIT: "<:",
    CompositionOp.MERGE: ":>",
    CompositionOp.RECUR: "~",
}

_OP_PRECEDENCE = {
    CompositionOp.RECUR: 4,
    CompositionOp.PAR: 3,
    CompositionOp.SEQ: 2,
    CompositionOp.SPLIT: 1,
    CompositionOp.MERGE: 1,
}

OPS_BY_SYMBOL = {symbol: op for op, symbol in _OP_SYMBOLS.items()}


@dataclass(kw_only=True)
class Node:
    """Base for every AST node. Position and id never take part in equality."""
    node_id: int = field(default=0, compare=False)
    line: int = field(default=0, compare=False)
    column: int = field(default=0, compare=False)
    invalid: bool = field(default=False, compare=False)


@dataclass
class Identifier(Node):
    """A name reference, possibly dotted (``os.osc``) or a primitive box (``_``, ``+``)."""
    name: str


@dataclass
class NumberLiteral(Node):
    value: float
    text: str = field(default="", compare=False)


@dataclass
class StringLiteral(Node):
    value: str


@dataclass
class FunctionCall(Node):
    """Application of a named box to argument expressions."""
    name: str
    args: list[Node] = field(default_factory=list)


@dataclass
class Composition(Node):
    """One of the five box-algebra operators joining two diagrams."""
    operator: CompositionOp
    left: Node
    right: Node


@dataclass
class Definition(Node):
    """``name(params) = body;``"""
    name: str
    params: list[str] = field(default_factory=list)
    body: Node | None = None
    end_line: int = field(default=0, compare=False)
    end_column: int = field(default=0, compare=False)


@dataclass
class WithBlock(Node):
    """``body with { local_defs }``; locals are visible only inside ``body``."""
    body: Node
    local_defs: list[Definition] = field(default_factory=list)


@dataclass
class ImportStatement(Node):
    path: str


@dataclass
class Declaration(Node):
    """``declare key "value";`` metadata."""
    key: str
    value: str


@dataclass
class Program(Node):
    """Complete parsed Faust program."""
    imports: list[ImportStatement] = field(default_factory=list)
    definitions: list[Definition] = field(default_factory=list)
    declarations: list[Declaration] = field(default_factory=list)

    def get_definition(self, name: str) -> Definition | None:
        for definition in self.definitions:
            if definition.name == name:
                return definition
        return None


def children(node: Node) -> list[Node]:
    """Direct child expressions of ``node`` in source order."""
    if isinstance(node, FunctionCall):
        return list(node.args)
    if isinstance(node, Composition):
        return [node.left, node.right]
    if isinstance(node, WithBlock):
        return [node.body, *node.local_defs]
    if isinstance(node, Definition):
        return [node.body] if node.body is not None else []
    if isinstance(node, Program):
        return [*node.imports, *node.declarations, *node.definitions]
    return []


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal without recursion."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(children(current)))
