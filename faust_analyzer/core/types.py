"""Core type definitions for the Faust analyzer."""

from enum import Enum
from typing import Any
from pydantic import BaseModel, ConfigDict, Field, field_validator


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class DiagnosticKind(str, Enum):
    LEXICAL_ERROR = "LexicalError"
    SYNTAX_ERROR = "SyntaxError"
    UNDEFINED_SYMBOL = "UndefinedSymbolError"
    DUPLICATE_DEFINITION = "DuplicateDefinitionError"
    CIRCULAR_DEFINITION = "CircularDefinitionError"
    BOX_DIMENSION = "BoxDimensionError"
    CAUSALITY_WARNING = "CausalityWarning"
    PARAMETER_RANGE = "ParameterRangeError"
    DUPLICATE_PATH = "DuplicatePathError"
    IMPORT_NOT_FOUND = "ImportNotFoundError"
    ANALYSIS_TIMEOUT = "AnalysisTimeoutError"


class BoxDimensionSubtype(str, Enum):
    SEQUENTIAL = "Sequential"
    SPLIT = "Split"
    MERGE = "Merge"
    RECURSIVE = "Recursive"
    CALL = "Call"


class SymbolKind(str, Enum):
    PRIMITIVE = "primitive"
    USER_DEFINED = "user_defined"
    IMPORTED = "imported"
    PARAMETER = "parameter"
    UI = "ui"


class DetailLevel(str, Enum):
    BASIC = "basic"
    FULL = "full"


class Dimension(BaseModel):
    """Input/output signal counts of a block diagram."""
    model_config = ConfigDict(frozen=True)

    inputs: int = Field(ge=0)
    outputs: int = Field(ge=0)

    def __str__(self) -> str:
        return f"({self.inputs}, {self.outputs})"


class Location(BaseModel):
    """A 1-based source position."""
    model_config = ConfigDict(frozen=True)

    line: int
    column: int


class Diagnostic(BaseModel):
    """A single error or warning produced by any analysis stage."""
    kind: DiagnosticKind
    severity: Severity
    line: int
    column: int
    message: str
    subtype: BoxDimensionSubtype | None = None
    suggestion: str | None = None
    related_locations: list[Location] = Field(default_factory=list)
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def location(self) -> Location:
        return Location(line=self.line, column=self.column)

    def sort_key(self) -> tuple[int, int, int]:
        rank = 0 if self.severity == Severity.ERROR else 1
        return (rank, self.line, self.column)


class LibrarySymbol(BaseModel):
    """An exported library function with its fixed arity."""
    arity: Dimension
    delay: bool = False


class LibraryExport(BaseModel):
    """What a library makes visible once imported.

    ``namespaces`` maps an environment prefix (``os``) to the library that
    implements it (``oscillators.lib``); ``symbols`` maps fully qualified
    names (``os.osc``) to their arity.
    """
    name: str
    namespaces: dict[str, str] = Field(default_factory=dict)
    symbols: dict[str, LibrarySymbol] = Field(default_factory=dict)

    def provides_prefix(self, prefix: str) -> bool:
        return prefix in self.namespaces

    def lookup(self, name: str) -> LibrarySymbol | None:
        return self.symbols.get(name)


class DefinitionInfo(BaseModel):
    """Structural summary of one definition."""
    name: str
    line: int
    params: list[str] = Field(default_factory=list)
    dimension: Dimension | None = None
    locals: list["DefinitionInfo"] = Field(default_factory=list)


class ImportInfo(BaseModel):
    path: str
    line: int
    found: bool = True


class DeclarationInfo(BaseModel):
    key: str
    value: str
    line: int


class UIParameter(BaseModel):
    """A user-facing control extracted from the program."""
    kind: str
    label: str
    path: str
    line: int
    column: int
    default: float | None = None
    min: float | None = None
    max: float | None = None
    step: float | None = None
    definition: str | None = None


class SourceMetrics(BaseModel):
    lines: int = 0
    characters: int = 0
    tokens: int = 0
    identifiers: int = 0
    operators: int = 0
    numbers: int = 0
    strings: int = 0


class StructureReport(BaseModel):
    """Definitions, imports and UI parameters of a program."""
    detail_level: DetailLevel = DetailLevel.BASIC
    definitions: list[DefinitionInfo] = Field(default_factory=list)
    imports: list[ImportInfo] = Field(default_factory=list)
    parameters: list[UIParameter] = Field(default_factory=list)
    declarations: list[DeclarationInfo] = Field(default_factory=list)
    diagnostics: list[Diagnostic] = Field(default_factory=list)
    has_process: bool | None = None
    unused_definitions: list[str] | None = None
    metrics: SourceMetrics | None = None

    @property
    def paths(self) -> list[str]:
        return [p.path for p in self.parameters]

    def get_definition(self, name: str) -> DefinitionInfo | None:
        for definition in self.definitions:
            if definition.name == name:
                return definition
        return None


class AnalysisResult(BaseModel):
    """Terminal, caller-facing result of one analysis call."""
    valid: bool
    diagnostics: list[Diagnostic] = Field(default_factory=list)
    quick_fixes: list[Diagnostic] = Field(default_factory=list)
    structure: StructureReport | None = None
    source_hash: str | None = None

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]

    def by_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]


class SyntaxReport(BaseModel):
    valid: bool
    diagnostics: list[Diagnostic] = Field(default_factory=list)


class FixExample(BaseModel):
    before: str
    after: str


class Diagnosis(BaseModel):
    """Explanation of a raw compiler error message."""
    category: str
    diagnosis: str
    root_cause: str
    suggested_fixes: list[str] = Field(default_factory=list)
    examples: list[FixExample] = Field(default_factory=list)
    line: int | None = None
    file: str | None = None
    context: list[str] = Field(default_factory=list)
    related_diagnostics: list[Diagnostic] = Field(default_factory=list)

    @field_validator("suggested_fixes")
    @classmethod
    def _strip_fixes(cls, value: list[str]) -> list[str]:
        return [fix.strip() for fix in value if fix.strip()]
