"""Static syntax and semantic analyzer for the Faust DSP language."""

from .analyzer import SourceAnalyzer
from .api import analyze, analyze_structure, analyze_syntax, diagnose_error
from .core.config import AnalyzerConfig
from .core.types import (
    AnalysisResult,
    DetailLevel,
    Diagnosis,
    Diagnostic,
    DiagnosticKind,
    Dimension,
    Severity,
    StructureReport,
    SyntaxReport,
)

__version__ = "0.1.0"

__all__ = [
    "AnalysisResult",
    "AnalyzerConfig",
    "DetailLevel",
    "Diagnosis",
    "Diagnostic",
    "DiagnosticKind",
    "Dimension",
    "Severity",
    "SourceAnalyzer",
    "StructureReport",
    "SyntaxReport",
    "analyze",
    "analyze_structure",
    "analyze_syntax",
    "diagnose_error",
]
