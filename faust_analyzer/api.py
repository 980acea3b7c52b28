"""Caller-facing entry points."""

import logging
import re
from typing import Any
from .analyzer import SourceAnalyzer
from .core.config import AnalyzerConfig
from .core.types import (
    AnalysisResult,
    DetailLevel,
    Diagnosis,
    Diagnostic,
    StructureReport,
    SyntaxReport,
)
from .rules.guides import categorize, category_for, get_guide, parse_compiler_output
from .rules.library import load_import_dictionary, standard_prefix


logger = logging.getLogger(__name__)

CONTEXT_LINES = 3

_UNDEFINED_NAME = re.compile(r"undefined symbol\s*:?\s*'?([\w.]+)'?", re.I)


def _config(config: AnalyzerConfig | None, import_dictionary: dict[str, Any] | None) -> AnalyzerConfig:
    config = config or AnalyzerConfig()
    if import_dictionary is not None:
        config = config.model_copy(update={"import_dictionary": load_import_dictionary(import_dictionary)})
    return config


def analyze(
    source: str,
    config: AnalyzerConfig | None = None,
    import_dictionary: dict[str, Any] | None = None,
) -> AnalysisResult:
    """Run the full pipeline and return every diagnostic with quick fixes."""
    return SourceAnalyzer(_config(config, import_dictionary)).analyze_string(source)


def analyze_syntax(
    source: str,
    config: AnalyzerConfig | None = None,
    import_dictionary: dict[str, Any] | None = None,
) -> SyntaxReport:
    """Validity and ordered diagnostics of ``source``."""
    result = analyze(source, config, import_dictionary)
    return SyntaxReport(valid=result.valid, diagnostics=result.diagnostics)


def analyze_structure(
    source: str,
    detail_level: DetailLevel | str = DetailLevel.BASIC,
    config: AnalyzerConfig | None = None,
    import_dictionary: dict[str, Any] | None = None,
) -> StructureReport:
    """Definitions, imports and UI parameters of ``source``."""
    analyzer = SourceAnalyzer(_config(config, import_dictionary))
    return analyzer.structure(source, DetailLevel(detail_level))


def extract_context(source: str, line: int, context_lines: int = CONTEXT_LINES) -> list[str]:
    """Numbered source lines around ``line``; the target line is marked with '>'."""
    lines = source.splitlines()
    start = max(0, line - context_lines - 1)
    end = min(len(lines), line + context_lines)
    width = len(str(end))
    return [
        f"{'>' if number == line else ' '} {number:>{width}} | {lines[number - 1]}"
        for number in range(start + 1, end + 1)
    ]


def _specific_fixes(category: str, message: str) -> list[str]:
    if category != "undefined_symbol":
        return []
    match = _UNDEFINED_NAME.search(message)
    if match is None:
        return []
    name = match.group(1)
    if standard_prefix(name) is not None:
        return [f'\'{name}\' comes from the standard libraries: add import("stdfaust.lib");']
    return [f"Define '{name}' before using it, or check its spelling"]


def _related(diagnostics: list[Diagnostic], category: str, line: int | None) -> list[Diagnostic]:
    return [
        d for d in diagnostics
        if (line is not None and d.line == line) or category_for(d.kind, d.message) == category
    ]


def diagnose_error(
    raw_message: str,
    source: str | None = None,
    config: AnalyzerConfig | None = None,
) -> Diagnosis:
    """Explain a raw compiler error message, optionally against its source."""
    messages = parse_compiler_output(raw_message)
    primary = next((m for m in messages if m.severity == "error"), messages[0] if messages else None)
    text = primary.message if primary else raw_message
    category = categorize(text)
    guide = get_guide(category)
    logger.debug("diagnosed %r as %s", text, category)

    diagnosis = Diagnosis(
        category=category,
        diagnosis=guide.diagnosis,
        root_cause=guide.root_cause,
        suggested_fixes=_specific_fixes(category, text) + list(guide.fixes),
        examples=list(guide.examples),
        line=primary.line if primary else None,
        file=primary.file if primary else None,
    )
    if source is None:
        return diagnosis

    result = SourceAnalyzer(config).analyze_string(source)
    related = _related(result.diagnostics, category, diagnosis.line)
    diagnosis.related_diagnostics = related
    if diagnosis.line is None and related:
        diagnosis.line = related[0].line

    specific = [d.suggestion for d in related if d.suggestion]
    fixes = list(dict.fromkeys(specific + diagnosis.suggested_fixes))
    diagnosis.suggested_fixes = [fix for fix in fixes if fix.strip()]
    if diagnosis.line is not None:
        diagnosis.context = extract_context(source, diagnosis.line)
    return diagnosis
