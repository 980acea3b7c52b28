"""Analyzer configuration."""

from pydantic import BaseModel, Field
from .types import DetailLevel, LibraryExport


DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_MAX_NESTING_DEPTH = 100
DEFAULT_QUICK_FIX_LIMIT = 5


class AnalyzerConfig(BaseModel):
    """Settings for one analyzer instance.

    ``import_dictionary`` of ``None`` selects the bundled standard library
    table; pass an explicit mapping to analyze against a different host
    environment.
    """
    timeout_seconds: float | None = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    max_nesting_depth: int = Field(default=DEFAULT_MAX_NESTING_DEPTH, ge=8)
    quick_fix_limit: int = Field(default=DEFAULT_QUICK_FIX_LIMIT, ge=0)
    detail_level: DetailLevel = DetailLevel.BASIC
    import_dictionary: dict[str, LibraryExport] | None = None

    def libraries(self) -> dict[str, LibraryExport]:
        if self.import_dictionary is not None:
            return self.import_dictionary
        from ..rules.library import default_import_dictionary
        return default_import_dictionary()
