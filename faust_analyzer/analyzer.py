"""Pipeline driver running every analysis stage over one source text."""

import logging
from pathlib import Path
from .core.config import AnalyzerConfig
from .core.deadline import Deadline
from .core.diagnostics import aggregate, timeout_result
from .core.dimensions import DimensionAnalyzer
from .core.scope import ScopeResolver
from .core.structure import StructureAnalyzer
from .core.types import AnalysisResult, DetailLevel, StructureReport
from .dsl.lexer import Tokenizer
from .dsl.parser import Parser
from .errors import AnalysisTimeout
from .storage.cache import AnalysisCache, source_hash


logger = logging.getLogger(__name__)


class SourceAnalyzer:
    """Runs tokenizer, parser, resolver, dimension and structure analysis.

    Each call builds its own AST, scope arena and diagnostic lists, so one
    instance can serve concurrent callers.
    """

    def __init__(self, config: AnalyzerConfig | None = None, cache: AnalysisCache | None = None):
        self.config = config or AnalyzerConfig()
        self.cache = cache
        self.tokenizer = Tokenizer()

    def analyze_string(self, source: str, detail_level: DetailLevel | None = None) -> AnalysisResult:
        """Analyze Faust source text."""
        detail = detail_level or self.config.detail_level
        if self.cache is not None:
            cached = self.cache.get(source, detail)
            if cached is not None:
                logger.debug("cache hit for %s", cached.source_hash)
                return cached

        digest = source_hash(source)
        deadline = Deadline(self.config.timeout_seconds)
        try:
            result = self._run(source, detail, deadline, digest)
        except AnalysisTimeout as exc:
            logger.warning("analysis timed out after %.2fs", exc.seconds)
            return timeout_result(exc.seconds, self.config.quick_fix_limit, digest)

        if self.cache is not None:
            self.cache.put(source, detail, result)
        return result

    def analyze_file(self, path: Path, detail_level: DetailLevel | None = None) -> AnalysisResult:
        """Analyze a Faust file."""
        with open(path) as f:
            content = f.read()
        return self.analyze_string(content, detail_level)

    def structure(self, source: str, detail_level: DetailLevel | None = None) -> StructureReport:
        """Structural summary carrying every diagnostic of the run."""
        detail = detail_level or self.config.detail_level
        result = self.analyze_string(source, detail)
        if result.structure is None:
            return StructureReport(detail_level=detail, diagnostics=result.diagnostics)
        return result.structure

    def _run(self, source: str, detail: DetailLevel, deadline: Deadline, digest: str) -> AnalysisResult:
        tokens, lex_errors = self.tokenizer.tokenize(source, deadline)
        deadline.check()

        program, parse_errors = Parser(tokens, self.config.max_nesting_depth, deadline).parse()
        resolution, bind_errors = ScopeResolver(self.config.libraries(), deadline).resolve(program)
        dimensions, dim_errors = DimensionAnalyzer(resolution, deadline).analyze(program)
        structure = StructureAnalyzer(resolution, dimensions, deadline).analyze(program, detail, tokens, source)

        result = aggregate(
            lex_errors + parse_errors + bind_errors + dim_errors + structure.diagnostics,
            structure=structure,
            quick_fix_limit=self.config.quick_fix_limit,
            source_hash=digest,
        )
        structure.diagnostics = result.diagnostics
        logger.info("analyzed %d chars: %d errors, %d warnings",
                    len(source), len(result.errors), len(result.warnings))
        return result
