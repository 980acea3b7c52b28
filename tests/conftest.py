"""Shared fixtures for the analyzer tests."""

import pytest
from pathlib import Path
from faust_analyzer.core.config import AnalyzerConfig
from faust_analyzer.core.dimensions import analyze_dimensions
from faust_analyzer.core.scope import resolve
from faust_analyzer.dsl.parser import parse_source
from faust_analyzer.rules.library import default_import_dictionary


EXAMPLES_PATH = Path(__file__).parent.parent / "faust_analyzer" / "dsl" / "examples"


@pytest.fixture
def examples_path() -> Path:
    return EXAMPLES_PATH


@pytest.fixture
def libraries():
    return default_import_dictionary()


@pytest.fixture
def config() -> AnalyzerConfig:
    return AnalyzerConfig(timeout_seconds=30)


@pytest.fixture
def pipeline(libraries):
    """Parse, resolve and size a source text; returns every intermediate."""

    def run(source: str):
        program, syntax_errors = parse_source(source)
        resolution, bind_errors = resolve(program, libraries)
        dims, dim_errors = analyze_dimensions(program, resolution)
        return program, resolution, dims, syntax_errors + bind_errors + dim_errors

    return run
