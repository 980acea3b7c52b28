"""Structural summary: definitions, imports and UI parameters."""

import logging
import re
from ..dsl.ast import Definition, FunctionCall, Node, Program, StringLiteral, WithBlock, children
from ..dsl.lexer import Token, TokenKind
from ..rules.primitives import BARGRAPHS, GROUPS, UI_CONTROLS
from .deadline import Deadline
from .dimensions import constant_value
from .scope import Resolution
from .types import (
    DeclarationInfo,
    DefinitionInfo,
    DetailLevel,
    Diagnostic,
    DiagnosticKind,
    Dimension,
    Location,
    Severity,
    SourceMetrics,
    StructureReport,
    SymbolKind,
    UIParameter,
)


logger = logging.getLogger(__name__)

_METADATA = re.compile(r"\[[^\]]*\]")
_GROUP_PREFIX = re.compile(r"^[hvt]:")

_SLIDERS = frozenset({"hslider", "vslider", "nentry"})

# argument positions of the numeric fields
_SLIDER_FIELDS = {"default": 1, "min": 2, "max": 3, "step": 4}
_BARGRAPH_FIELDS = {"min": 1, "max": 2}


def clean_label(label: str) -> str:
    """Strip ``[key:value]`` metadata from a UI label."""
    return _METADATA.sub("", label).strip()


def _format(value: float) -> str:
    return str(int(value)) if value == int(value) else f"{value:g}"


class StructureAnalyzer:
    """Extracts the structural summary of a resolved program."""

    def __init__(
        self,
        resolution: Resolution,
        dimensions: dict[int, Dimension],
        deadline: Deadline | None = None,
    ):
        self.resolution = resolution
        self.dimensions = dimensions
        self.deadline = deadline or Deadline()
        self.errors: list[Diagnostic] = []

    def analyze(
        self,
        program: Program,
        detail_level: DetailLevel = DetailLevel.BASIC,
        tokens: list[Token] | None = None,
        source: str | None = None,
    ) -> StructureReport:
        full = detail_level == DetailLevel.FULL
        report = StructureReport(
            detail_level=detail_level,
            definitions=[self._definition_info(d, full) for d in program.definitions],
            imports=list(self.resolution.imports),
            declarations=[
                DeclarationInfo(key=d.key, value=d.value, line=d.line) for d in program.declarations
            ],
        )

        for definition in program.definitions:
            report.parameters.extend(self._parameters(definition))
        self._check_ranges(report.parameters)
        self._check_paths(report.parameters)

        if full:
            report.has_process = program.get_definition("process") is not None
            report.unused_definitions = [
                d.name for d in program.definitions
                if d.name != "process" and not self.resolution.is_referenced(d)
            ]
            report.metrics = source_metrics(tokens or [], source or "")

        report.diagnostics = self.errors
        logger.debug("structure: %d definitions, %d parameters", len(report.definitions), len(report.parameters))
        return report

    def _definition_info(self, definition: Definition, full: bool) -> DefinitionInfo:
        info = DefinitionInfo(
            name=definition.name,
            line=definition.line,
            params=list(definition.params),
            dimension=self.dimensions.get(definition.node_id),
        )
        if full and definition.body is not None:
            for block in self._with_blocks(definition.body):
                info.locals.extend(self._definition_info(local, full) for local in block.local_defs)
        return info

    def _with_blocks(self, root: Node) -> list[WithBlock]:
        """Outermost ``with`` blocks below ``root``; nested ones belong to their locals."""
        blocks = []
        stack = [root]
        while stack:
            node = stack.pop()
            if isinstance(node, WithBlock):
                blocks.append(node)
                stack.append(node.body)
                continue
            if isinstance(node, Definition):
                continue
            stack.extend(reversed(children(node)))
        return blocks

    # -- UI parameters -------------------------------------------------

    def _is_ui(self, node: FunctionCall) -> bool:
        symbol = self.resolution.symbol_for(node)
        return symbol is not None and symbol.kind == SymbolKind.UI

    def _parameters(self, definition: Definition) -> list[UIParameter]:
        if definition.invalid or definition.body is None:
            return []
        found: list[UIParameter] = []
        stack: list[tuple[Node, tuple[str, ...], str]] = [(definition.body, (), definition.name)]
        while stack:
            self.deadline.check()
            node, groups, owner = stack.pop()

            if isinstance(node, FunctionCall) and self._is_ui(node) and node.args \
                    and isinstance(node.args[0], StringLiteral):
                label = clean_label(node.args[0].value)
                if node.name in GROUPS and len(node.args) == 2:
                    stack.append((node.args[1], (*groups, _GROUP_PREFIX.sub("", label)), owner))
                    continue
                if node.name in UI_CONTROLS or node.name in BARGRAPHS:
                    found.append(self._parameter(node, label, groups, owner))

            if isinstance(node, Definition):
                if node.invalid or node.body is None:
                    continue
                stack.append((node.body, groups, node.name))
                continue
            stack.extend((child, groups, owner) for child in reversed(children(node)))

        found.sort(key=lambda p: (p.line, p.column))
        return found

    def _parameter(self, node: FunctionCall, label: str, groups: tuple[str, ...], owner: str) -> UIParameter:
        parameter = UIParameter(
            kind=node.name,
            label=label,
            path="/".join((*groups, label)),
            line=node.line,
            column=node.column,
            definition=owner,
        )
        if node.name in BARGRAPHS:
            fields = _BARGRAPH_FIELDS
        elif node.name in _SLIDERS:
            fields = _SLIDER_FIELDS
        else:
            fields = {}
        for name, index in fields.items():
            if index < len(node.args):
                setattr(parameter, name, constant_value(node.args[index], self.resolution))
        return parameter

    def _check_ranges(self, parameters: list[UIParameter]) -> None:
        for parameter in parameters:
            low, high, default = parameter.min, parameter.max, parameter.default
            if low is None or high is None:
                continue
            data = {"label": parameter.label, "min": low, "max": high, "default": default}
            if low > high:
                message = f"'{parameter.label}' has min {_format(low)} greater than max {_format(high)}"
            elif default is not None and not low <= default <= high:
                message = (f"Default value {_format(default)} of '{parameter.label}' is outside "
                           f"its range [{_format(low)}, {_format(high)}]")
            else:
                continue
            self.errors.append(Diagnostic(
                kind=DiagnosticKind.PARAMETER_RANGE,
                severity=Severity.ERROR,
                line=parameter.line,
                column=parameter.column,
                message=message,
                data=data,
            ))

    def _check_paths(self, parameters: list[UIParameter]) -> None:
        seen: dict[str, UIParameter] = {}
        for parameter in sorted(parameters, key=lambda p: (p.line, p.column)):
            first = seen.get(parameter.path)
            if first is None:
                seen[parameter.path] = parameter
                continue
            self.errors.append(Diagnostic(
                kind=DiagnosticKind.DUPLICATE_PATH,
                severity=Severity.ERROR,
                line=parameter.line,
                column=parameter.column,
                message=f"UI path '{parameter.path}' is already used at line {first.line}",
                related_locations=[Location(line=first.line, column=first.column)],
                data={"path": parameter.path},
            ))


def source_metrics(tokens: list[Token], source: str) -> SourceMetrics:
    """Token and size counts for a source text."""
    kinds = [token.kind for token in tokens]
    return SourceMetrics(
        lines=len(source.splitlines()),
        characters=len(source),
        tokens=len(tokens),
        identifiers=kinds.count(TokenKind.IDENTIFIER),
        operators=kinds.count(TokenKind.OPERATOR),
        numbers=kinds.count(TokenKind.NUMBER),
        strings=kinds.count(TokenKind.STRING),
    )


def analyze_structure(
    program: Program,
    resolution: Resolution,
    dimensions: dict[int, Dimension],
    detail_level: DetailLevel = DetailLevel.BASIC,
    tokens: list[Token] | None = None,
    source: str | None = None,
) -> StructureReport:
    """Summarize ``program`` and validate its UI parameters."""
    analyzer = StructureAnalyzer(resolution, dimensions)
    return analyzer.analyze(program, detail_level, tokens, source)
