"""Tests for the primitive table and the import dictionary."""

import pytest
from pydantic import ValidationError
from faust_analyzer import analyze_syntax
from faust_analyzer.core.types import Dimension
from faust_analyzer.errors import LibraryNotFound
from faust_analyzer.rules.library import (
    STDFAUST,
    default_import_dictionary,
    get_library,
    load_import_dictionary,
    standard_prefix,
)
from faust_analyzer.rules.primitives import (
    PRIMITIVE_REGISTRY,
    Primitive,
    PrimitiveCategory,
    get_primitive,
    list_primitives,
    register_primitive,
)


def test_primitive_arities():
    """Test a few entries of the primitive table."""
    assert get_primitive("_").arity == Dimension(inputs=1, outputs=1)
    assert get_primitive("!").arity == Dimension(inputs=1, outputs=0)
    assert get_primitive("@").delay
    assert get_primitive("select2").arity == Dimension(inputs=3, outputs=1)
    assert get_primitive("hslider").ui_args == 5
    assert get_primitive("nosuchbox") is None
    assert "mem" in list_primitives()


def test_register_primitive():
    """Test that a registered primitive is visible to analysis."""
    register_primitive(Primitive(name="fold3", category=PrimitiveCategory.MATH,
                                 arity=Dimension(inputs=3, outputs=1)))
    try:
        assert analyze_syntax("process = _, _, _ : fold3;").valid
        assert not analyze_syntax("process = _, _ : fold3;").valid
    finally:
        del PRIMITIVE_REGISTRY["fold3"]


def test_default_dictionary_is_fresh():
    """Test that callers get an independent copy."""
    first = default_import_dictionary()
    first[STDFAUST].symbols.clear()
    assert default_import_dictionary()[STDFAUST].lookup("os.osc") is not None


def test_get_library():
    """Test library lookup."""
    assert get_library(STDFAUST).provides_prefix("fi")
    with pytest.raises(LibraryNotFound):
        get_library("missing.lib")


def test_load_import_dictionary_validates():
    """Test that malformed tables are rejected."""
    with pytest.raises(ValidationError):
        load_import_dictionary({"bad.lib": {"symbols": {"b.f": {"arity": {"inputs": -1, "outputs": 1}}}}})


def test_standard_prefix():
    """Test namespace detection."""
    assert standard_prefix("os.osc") == "os"
    assert standard_prefix("zz.osc") is None
    assert standard_prefix("osc") is None
