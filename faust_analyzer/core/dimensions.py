"""Box-algebra dimension analysis.

Every expression node gets a ``Dimension`` (inputs, outputs) computed
bottom-up from its children. A node whose dimension cannot be known is left
out of the map; parents of such nodes skip their own checks, so one mistake
is reported exactly once.
"""

import logging
from ..dsl.ast import (
    Composition,
    CompositionOp,
    Definition,
    FunctionCall,
    Identifier,
    Node,
    NumberLiteral,
    Program,
    StringLiteral,
    WithBlock,
    children,
)
from ..rules.primitives import BARGRAPHS, GROUPS, ITERATIONS, UI_CONTROLS, get_primitive
from .deadline import Deadline
from .scope import Resolution, Symbol
from .types import (
    BoxDimensionSubtype,
    Diagnostic,
    DiagnosticKind,
    Dimension,
    Location,
    Severity,
    SymbolKind,
)


logger = logging.getLogger(__name__)

SIGNAL = Dimension(inputs=0, outputs=1)

_SUBTYPES = {
    CompositionOp.SEQ: BoxDimensionSubtype.SEQUENTIAL,
    CompositionOp.SPLIT: BoxDimensionSubtype.SPLIT,
    CompositionOp.MERGE: BoxDimensionSubtype.MERGE,
    CompositionOp.RECUR: BoxDimensionSubtype.RECURSIVE,
}


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def compose(op: CompositionOp, a: Dimension, b: Dimension) -> Dimension | None:
    """Dimension of ``a op b``, or ``None`` when the composition is invalid."""
    if op == CompositionOp.SEQ:
        if a.outputs != b.inputs:
            return None
        return Dimension(inputs=a.inputs, outputs=b.outputs)
    if op == CompositionOp.PAR:
        return Dimension(inputs=a.inputs + b.inputs, outputs=a.outputs + b.outputs)
    if op == CompositionOp.SPLIT:
        if a.outputs == 0:
            valid = b.inputs == 0
        else:
            valid = b.inputs % a.outputs == 0
        return Dimension(inputs=a.inputs, outputs=b.outputs) if valid else None
    if op == CompositionOp.MERGE:
        if b.inputs == 0:
            valid = a.outputs == 0
        else:
            valid = a.outputs % b.inputs == 0
        return Dimension(inputs=a.inputs, outputs=b.outputs) if valid else None
    if a.outputs < b.inputs or a.inputs < b.outputs:
        return None
    return Dimension(inputs=a.inputs - b.outputs, outputs=a.outputs)


def _violation(op: CompositionOp, a: Dimension, b: Dimension) -> str:
    if op == CompositionOp.SEQ:
        return (f"Sequential composition A : B requires outputs(A) == inputs(B), "
                f"but A has {_plural(a.outputs, 'output')} and B has {_plural(b.inputs, 'input')}")
    if op == CompositionOp.SPLIT:
        return (f"Split composition A <: B requires outputs(A) to divide inputs(B), "
                f"but A has {_plural(a.outputs, 'output')} and B has {_plural(b.inputs, 'input')}")
    if op == CompositionOp.MERGE:
        return (f"Merge composition A :> B requires outputs(A) to be a multiple of inputs(B), "
                f"but A has {_plural(a.outputs, 'output')} and B has {_plural(b.inputs, 'input')}")
    return (f"Recursive composition A ~ B requires outputs(A) >= inputs(B) and inputs(A) >= outputs(B), "
            f"but A is {a} and B is {b}")


def constant_value(node: Node, resolution: Resolution) -> float | None:
    """Numeric value of a literal or of a name bound to one."""
    seen: set[int] = set()
    while node.node_id not in seen:
        seen.add(node.node_id)
        if isinstance(node, NumberLiteral):
            return node.value
        symbol = resolution.symbol_for(node)
        if not isinstance(node, Identifier) or symbol is None or symbol.definition is None:
            return None
        definition = symbol.definition
        if definition.params or definition.body is None or definition.invalid:
            return None
        node = definition.body
    return None


class DimensionAnalyzer:
    """Computes dimensions for every definition of a resolved program.

    Definitions are sized from an explicit worklist: when a body reaches a
    definition that has not been sized yet, that definition is pushed and the
    body resumes once it is done. Chains of references never grow the Python
    stack.
    """

    def __init__(self, resolution: Resolution, deadline: Deadline | None = None):
        self.resolution = resolution
        self.deadline = deadline or Deadline()
        self.dims: dict[int, Dimension] = {}
        self.errors: list[Diagnostic] = []
        self._done: set[int] = set()
        self._active: list[Definition] = []
        self._delay_free: set[int] = set()

    def analyze(self, program: Program) -> tuple[dict[int, Dimension], list[Diagnostic]]:
        for definition in program.definitions:
            self.definition_dimension(definition)
        logger.debug("computed %d dimensions (%d errors)", len(self.dims), len(self.errors))
        return self.dims, self.errors

    # -- definitions ---------------------------------------------------

    def definition_dimension(self, definition: Definition, via: Node | None = None) -> Dimension | None:
        """Box dimension of a definition; parameters count as leading inputs."""
        key = definition.node_id
        if key in self._done:
            return self.dims.get(key)
        if self._is_active(definition):
            self._report_cycle(definition, via)
            return None
        self._size(definition)
        return self.dims.get(key)

    def _is_active(self, definition: Definition) -> bool:
        return any(d is definition for d in self._active)

    def _size(self, definition: Definition) -> None:
        frames: list[tuple[Definition, list[tuple[Node, bool]]]] = []
        self._open(definition, frames)
        while frames:
            current, stack = frames[-1]
            if not stack:
                frames.pop()
                self._close(current)
                continue
            node, ready = stack.pop()
            if not ready:
                stack.append((node, True))
                stack.extend((child, False) for child in reversed(self._operands(node)))
                continue
            pending = self._pending(node)
            if pending is not None:
                stack.append((node, True))
                self._open(pending, frames)
                continue
            self.deadline.check()
            dim = self._compute(node)
            if dim is not None:
                self.dims[node.node_id] = dim

    def _open(self, definition: Definition, frames: list) -> None:
        if definition.invalid or definition.body is None:
            self._done.add(definition.node_id)
            return
        self._active.append(definition)
        frames.append((definition, [(definition.body, False)]))

    def _close(self, definition: Definition) -> None:
        self._active.pop()
        self._done.add(definition.node_id)
        body = self.dims.get(definition.body.node_id)
        if body is not None:
            self.dims[definition.node_id] = Dimension(
                inputs=len(definition.params) + body.inputs, outputs=body.outputs
            )

    def _pending(self, node: Node) -> Definition | None:
        """A definition ``node`` needs sized before its own dimension is known."""
        if isinstance(node, WithBlock):
            candidates = node.local_defs
        elif isinstance(node, Identifier):
            candidates = [self._user_definition(node)]
        elif isinstance(node, FunctionCall):
            if any(self.dims.get(arg.node_id) is None for arg in node.args):
                return None
            candidates = [self._user_definition(node)]
        else:
            return None
        for definition in candidates:
            if definition is not None and definition.node_id not in self._done and not self._is_active(definition):
                return definition
        return None

    def _user_definition(self, node: Node) -> Definition | None:
        symbol = self.resolution.symbol_for(node)
        if symbol is None or symbol.kind != SymbolKind.USER_DEFINED:
            return None
        return symbol.definition

    def _report_cycle(self, definition: Definition, via: Node | None) -> None:
        start = next(i for i, d in enumerate(self._active) if d is definition)
        path = " -> ".join([d.name for d in self._active[start:]] + [definition.name])
        at = via or definition
        self.errors.append(Diagnostic(
            kind=DiagnosticKind.CIRCULAR_DEFINITION,
            severity=Severity.ERROR,
            line=at.line,
            column=at.column,
            message=f"Circular definition: {path}",
            related_locations=[Location(line=definition.line, column=definition.column)],
            data={"cycle": [d.name for d in self._active[start:]]},
        ))

    # -- expressions ---------------------------------------------------

    def _operands(self, node: Node) -> list[Node]:
        if isinstance(node, Composition):
            return [node.left, node.right]
        if isinstance(node, WithBlock):
            return [node.body]
        if isinstance(node, FunctionCall):
            if self._is_iteration(node):
                return [node.args[2]]
            return list(node.args)
        return []

    def _compute(self, node: Node) -> Dimension | None:
        if node.invalid:
            return None
        if isinstance(node, (NumberLiteral, StringLiteral)):
            return SIGNAL
        if isinstance(node, Identifier):
            return self._reference(node)
        if isinstance(node, FunctionCall):
            return self._call(node)
        if isinstance(node, Composition):
            return self._composition(node)
        if isinstance(node, WithBlock):
            for definition in node.local_defs:
                self.definition_dimension(definition)
            return self.dims.get(node.body.node_id)
        return None

    def _reference(self, node: Node) -> Dimension | None:
        symbol = self.resolution.symbol_for(node)
        if symbol is None:
            return None
        if symbol.kind == SymbolKind.USER_DEFINED and symbol.definition is not None:
            return self.definition_dimension(symbol.definition, via=node)
        if symbol.kind == SymbolKind.PARAMETER:
            return SIGNAL
        return symbol.arity

    def _is_parameter(self, node: Node) -> bool:
        symbol = self.resolution.symbol_for(node)
        return isinstance(node, Identifier) and symbol is not None and symbol.kind == SymbolKind.PARAMETER

    def _composition(self, node: Composition) -> Dimension | None:
        a = self.dims.get(node.left.node_id)
        b = self.dims.get(node.right.node_id)
        if a is None or b is None:
            return None
        # a parameter used where inputs are consumed is a box argument of unknown shape
        if node.operator != CompositionOp.PAR and self._is_parameter(node.right):
            return None

        result = compose(node.operator, a, b)
        if result is None:
            self.errors.append(Diagnostic(
                kind=DiagnosticKind.BOX_DIMENSION,
                severity=Severity.ERROR,
                subtype=_SUBTYPES[node.operator],
                line=node.line,
                column=node.column,
                message=_violation(node.operator, a, b),
                data={
                    "operator": node.operator.symbol,
                    "outputs": a.outputs,
                    "inputs": b.inputs,
                    "left": [a.inputs, a.outputs],
                    "right": [b.inputs, b.outputs],
                },
            ))
            return None

        if node.operator == CompositionOp.RECUR and not self.contains_delay(node.right):
            self.errors.append(Diagnostic(
                kind=DiagnosticKind.CAUSALITY_WARNING,
                severity=Severity.WARNING,
                line=node.line,
                column=node.column,
                message="Feedback path of '~' contains no delay ('@', 'mem' or \"'\")",
                data={"operator": "~"},
            ))
        return result

    # -- calls ---------------------------------------------------------

    def _is_iteration(self, node: FunctionCall) -> bool:
        symbol = self.resolution.symbol_for(node)
        return (
            node.name in ITERATIONS
            and len(node.args) == 3
            and symbol is not None
            and symbol.kind == SymbolKind.PRIMITIVE
        )

    def _call_error(self, node: FunctionCall, message: str, **data) -> None:
        self.errors.append(Diagnostic(
            kind=DiagnosticKind.BOX_DIMENSION,
            severity=Severity.ERROR,
            subtype=BoxDimensionSubtype.CALL,
            line=node.line,
            column=node.column,
            message=message,
            data={"name": node.name, **data},
        ))

    def _call(self, node: FunctionCall) -> Dimension | None:
        symbol = self.resolution.symbol_for(node)
        if symbol is None:
            return None
        if self._is_iteration(node):
            return self._iteration(node)
        if symbol.kind == SymbolKind.UI:
            return self._ui_call(node)

        args = [self.dims.get(arg.node_id) for arg in node.args]
        if any(arg is None for arg in args):
            return None
        if symbol.kind == SymbolKind.PARAMETER:
            return None

        callee = self._reference(node)
        if callee is None:
            return None
        supplied = sum(arg.outputs for arg in args)
        consumed = sum(arg.inputs for arg in args)
        if supplied > callee.inputs:
            self._call_error(
                node,
                f"'{node.name}' accepts {_plural(callee.inputs, 'input')} but its arguments "
                f"supply {_plural(supplied, 'signal')}",
                outputs=supplied,
                inputs=callee.inputs,
            )
            return None
        return Dimension(inputs=consumed + callee.inputs - supplied, outputs=callee.outputs)

    def _ui_call(self, node: FunctionCall) -> Dimension | None:
        primitive = get_primitive(node.name)
        expected = primitive.ui_args if primitive else None
        if expected is not None and len(node.args) != expected:
            self._call_error(
                node,
                f"'{node.name}' expects {_plural(expected, 'argument')}, got {len(node.args)}",
                expected=expected,
                got=len(node.args),
            )
            return None
        if node.name in GROUPS:
            return self.dims.get(node.args[1].node_id)
        if node.name in BARGRAPHS:
            return Dimension(inputs=1, outputs=1)
        if node.name in UI_CONTROLS:
            return SIGNAL
        return None

    def _iteration(self, node: FunctionCall) -> Dimension | None:
        body = self.dims.get(node.args[2].node_id)
        count = constant_value(node.args[1], self.resolution)
        if body is None or count is None or count < 0 or count != int(count):
            return None
        n = int(count)

        if node.name == "par":
            return Dimension(inputs=n * body.inputs, outputs=n * body.outputs)
        if node.name == "seq":
            if n > 1 and body.inputs != body.outputs:
                self.errors.append(Diagnostic(
                    kind=DiagnosticKind.BOX_DIMENSION,
                    severity=Severity.ERROR,
                    subtype=BoxDimensionSubtype.SEQUENTIAL,
                    line=node.line,
                    column=node.column,
                    message=(f"seq() chains copies of a box with {_plural(body.outputs, 'output')} "
                             f"into {_plural(body.inputs, 'input')}"),
                    data={"operator": ":", "outputs": body.outputs, "inputs": body.inputs},
                ))
                return None
            if n == 0:
                return Dimension(inputs=0, outputs=0)
            return body
        return Dimension(inputs=n * body.inputs, outputs=body.outputs)

    # -- causality -----------------------------------------------------

    def contains_delay(self, root: Node) -> bool:
        """Whether ``root`` syntactically contains a delay, following definitions."""
        stack = [root]
        visited: set[int] = set()
        while stack:
            self.deadline.check()
            node = stack.pop()
            if isinstance(node, (Identifier, FunctionCall)):
                symbol = self.resolution.symbol_for(node)
                if symbol is not None and self._symbol_delays(symbol):
                    return True
                definition = self._user_definition(node)
                if definition is not None and definition.body is not None:
                    key = definition.node_id
                    if key not in visited and key not in self._delay_free:
                        visited.add(key)
                        stack.append(definition.body)
            stack.extend(children(node))
        # everything reachable was scanned without finding a delay
        self._delay_free.update(visited)
        return False

    def _symbol_delays(self, symbol: Symbol) -> bool:
        if symbol.delay:
            return True
        return symbol.kind == SymbolKind.IMPORTED and symbol.arity is None


def analyze_dimensions(
    program: Program,
    resolution: Resolution,
    deadline: Deadline | None = None,
) -> tuple[dict[int, Dimension], list[Diagnostic]]:
    """Compute per-node dimensions and box-algebra diagnostics."""
    return DimensionAnalyzer(resolution, deadline).analyze(program)
