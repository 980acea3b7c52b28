"""Diagnostics engine: ordering, suggestions and quick fixes."""

import logging
from ..rules.suggestions import suggest
from .config import DEFAULT_QUICK_FIX_LIMIT
from .types import AnalysisResult, Diagnostic, DiagnosticKind, Severity, StructureReport


logger = logging.getLogger(__name__)


def annotate(diagnostic: Diagnostic) -> Diagnostic:
    """Copy of ``diagnostic`` with a suggestion from the rule table, if it lacks one."""
    if diagnostic.suggestion:
        return diagnostic
    suggestion = suggest(diagnostic)
    if suggestion is None:
        return diagnostic
    return diagnostic.model_copy(update={"suggestion": suggestion})


def order(diagnostics: list[Diagnostic]) -> list[Diagnostic]:
    """Errors before warnings, then by position; stable for ties."""
    return sorted(diagnostics, key=lambda d: d.sort_key())


def aggregate(
    diagnostics: list[Diagnostic],
    structure: StructureReport | None = None,
    quick_fix_limit: int = DEFAULT_QUICK_FIX_LIMIT,
    source_hash: str | None = None,
) -> AnalysisResult:
    """Merge the diagnostics of every stage into the final result."""
    ordered = order([annotate(d) for d in diagnostics])
    quick_fixes = [d for d in ordered if d.suggestion][:quick_fix_limit]
    valid = not any(d.severity == Severity.ERROR for d in ordered)

    logger.debug("aggregated %d diagnostics (%d quick fixes, valid=%s)", len(ordered), len(quick_fixes), valid)
    return AnalysisResult(
        valid=valid,
        diagnostics=ordered,
        quick_fixes=quick_fixes,
        structure=structure,
        source_hash=source_hash,
    )


def timeout_result(
    seconds: float,
    quick_fix_limit: int = DEFAULT_QUICK_FIX_LIMIT,
    source_hash: str | None = None,
) -> AnalysisResult:
    """Result reported when the deadline expires: exactly one error, no partial state."""
    diagnostic = annotate(Diagnostic(
        kind=DiagnosticKind.ANALYSIS_TIMEOUT,
        severity=Severity.ERROR,
        line=1,
        column=1,
        message=f"Analysis did not finish within {seconds:g} seconds",
        data={"timeout_seconds": seconds},
    ))
    return AnalysisResult(valid=False, diagnostics=[diagnostic], quick_fixes=[diagnostic][:quick_fix_limit],
                          source_hash=source_hash)
