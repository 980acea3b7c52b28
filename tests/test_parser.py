"""Tests for the recursive-descent parser."""

import pytest
from faust_analyzer.core.types import DiagnosticKind
from faust_analyzer.dsl.ast import (
    Composition,
    CompositionOp,
    FunctionCall,
    Identifier,
    NumberLiteral,
    StringLiteral,
    WithBlock,
    walk,
)
from faust_analyzer.dsl.lexer import tokenize
from faust_analyzer.dsl.parser import Parser, parse_file, parse_source
from faust_analyzer.dsl.printer import to_source


def body_of(source: str, name: str = "process"):
    program, errors = parse_source(source)
    assert errors == []
    return program.get_definition(name).body


def shape(node):
    """Compact structural rendering used to compare trees."""
    if isinstance(node, Composition):
        return (node.operator.symbol, shape(node.left), shape(node.right))
    if isinstance(node, Identifier):
        return node.name
    if isinstance(node, NumberLiteral):
        return node.value
    if isinstance(node, FunctionCall):
        return (node.name, [shape(a) for a in node.args])
    if isinstance(node, StringLiteral):
        return repr(node.value)
    if isinstance(node, WithBlock):
        return ("with", shape(node.body), [d.name for d in node.local_defs])
    return type(node).__name__


def test_program_statements():
    """Test that imports, declarations and definitions are collected."""
    program, errors = parse_source(
        'import("stdfaust.lib");\ndeclare name "demo";\ngain = 0.5;\nprocess = _ * gain;'
    )

    assert errors == []
    assert [i.path for i in program.imports] == ["stdfaust.lib"]
    assert [(d.key, d.value) for d in program.declarations] == [("name", "demo")]
    assert [d.name for d in program.definitions] == ["gain", "process"]
    assert program.get_definition("process").line == 4


@pytest.mark.parametrize("source,expected", [
    ("a : b , c", (":", "a", (",", "b", "c"))),
    ("a , b : c", (":", (",", "a", "b"), "c")),
    ("a ~ b , c", (",", ("~", "a", "b"), "c")),
    ("a : b : c", (":", (":", "a", "b"), "c")),
    ("a <: b , c :> d", (":>", ("<:", "a", (",", "b", "c")), "d")),
    ("a : b <: c", ("<:", (":", "a", "b"), "c")),
])
def test_composition_precedence(source, expected):
    """Test precedence and left associativity of the composition operators."""
    assert shape(body_of(f"process = {source};")) == expected


def test_infix_arithmetic_is_desugared():
    """Test that a + b becomes (a, b) : +."""
    assert shape(body_of("process = _ + 1;")) == (":", (",", "_", 1.0), "+")


def test_infix_binds_tighter_than_composition():
    """Test that arithmetic groups before ':'."""
    assert shape(body_of("process = _ * 2 : _;")) == (":", (":", (",", "_", 2.0), "*"), "_")


def test_infix_tiers():
    """Test that multiplication binds tighter than addition."""
    expected = (":", (",", 1.0, (":", (",", 2.0, 3.0), "*")), "+")
    assert shape(body_of("process = 1 + 2 * 3;")) == expected


def test_prime_is_desugared_to_mem():
    """Test the postfix one-sample delay."""
    assert shape(body_of("process = _';")) == (":", "_", "mem")


def test_operator_boxes():
    """Test operators used as boxes and partially applied."""
    assert shape(body_of("process = _, _ : +;")) == (":", (",", "_", "_"), "+")
    assert shape(body_of("process = *(0.5);")) == ("*", [0.5])
    assert shape(body_of("process = _ : !;")) == (":", "_", "!")


def test_negative_literal():
    """Test that a leading minus before a number is a literal."""
    assert shape(body_of("process = -1;")) == -1.0
    assert shape(body_of("process = _ - 1;")) == (":", (",", "_", 1.0), "-")


def test_function_call_arguments():
    """Test that commas separate arguments instead of composing."""
    body = body_of('process = hslider("gain", 0.5, 0, 1, 0.01);')
    assert isinstance(body, FunctionCall)
    assert len(body.args) == 5
    assert isinstance(body.args[0], StringLiteral)


def test_parenthesized_argument_keeps_parallel():
    """Test that parentheses allow ',' inside an argument."""
    body = body_of("process = f((_, _)) with { f(x) = x; };")
    call = body.body
    assert shape(call.args[0]) == (",", "_", "_")


def test_definition_with_params():
    """Test parameter lists."""
    program, errors = parse_source("mix(a, b) = a + b;")
    assert errors == []
    assert program.definitions[0].params == ["a", "b"]


def test_with_block():
    """Test local definitions attached to an expression."""
    body = body_of("process = f : g with { f = _; g = _ * 2; };")
    assert isinstance(body, WithBlock)
    assert [d.name for d in body.local_defs] == ["f", "g"]
    assert shape(body.body) == (":", "f", "g")


def test_node_ids_are_unique():
    """Test that every node gets its own id."""
    program, _ = parse_source("process = (_, _) : + with { k = 1; };")
    ids = [node.node_id for node in walk(program) if node is not program]
    assert len(ids) == len(set(ids))


def test_missing_semicolon_at_end_of_input():
    """Test the error position for a missing final semicolon."""
    program, errors = parse_source("process = os.osc(440)")

    assert len(errors) == 1
    assert errors[0].kind == DiagnosticKind.SYNTAX_ERROR
    assert (errors[0].line, errors[0].column) == (1, 22)
    assert program.definitions[0].invalid


def test_missing_semicolon_before_new_line():
    """Test that parsing resumes at the next line without skipping it."""
    program, errors = parse_source("a = _\nb = _;\nprocess = b;")

    assert len(errors) == 1
    assert (errors[0].line, errors[0].column) == (1, 6)
    assert [d.name for d in program.definitions] == ["a", "b", "process"]
    assert program.get_definition("a").invalid
    assert not program.get_definition("b").invalid


def test_recovery_after_unexpected_token():
    """Test that one bad statement does not hide later ones."""
    program, errors = parse_source("a = _ : ;\nb = ) ;\nprocess = _;")

    assert len(errors) == 2
    assert [e.line for e in errors] == [1, 2]
    assert not program.get_definition("process").invalid


def test_unclosed_parenthesis():
    """Test the error for a missing ')'."""
    _, errors = parse_source("process = (_ , _ : +;")
    assert len(errors) == 1
    assert "Expected ')'" in errors[0].message
    assert errors[0].related_locations[0].column == 11


def test_unmatched_closing_parenthesis():
    """Test the error for an extra ')'."""
    _, errors = parse_source("process = _);\nx = 1;")
    assert len(errors) == 1
    assert errors[0].message == "Unmatched ')'"


def test_missing_semicolon_inside_with_block():
    """Test recovery when the last local definition lacks ';'."""
    program, errors = parse_source("process = f with { f = _ };")
    assert len(errors) == 1
    body = program.get_definition("process").body
    assert isinstance(body, WithBlock)
    assert body.local_defs[0].invalid


def test_unclosed_with_block():
    """Test the error for a 'with' block that never closes."""
    _, errors = parse_source("process = f with { f = _;")
    assert len(errors) == 1
    assert "Unclosed '{'" in errors[0].message


def test_missing_equals():
    """Test a definition without '='."""
    program, errors = parse_source("process _;\ny = 1;")
    assert len(errors) == 1
    assert "Expected '='" in errors[0].message
    assert program.get_definition("y") is not None


def test_nesting_limit():
    """Test that pathological nesting is a syntax error, not a crash."""
    source = "process = " + "(" * 20 + "_" + ")" * 20 + ";"
    tokens, _ = tokenize(source)
    program, errors = Parser(tokens, max_depth=8).parse()

    assert len(errors) == 1
    assert "nested too deeply" in errors[0].message
    assert program.definitions[0].invalid


def test_long_composition_chain():
    """Test that long left-associative chains parse without deep recursion."""
    source = "process = " + " : ".join(["_"] * 2000) + ";"
    program, errors = parse_source(source)
    assert errors == []
    assert isinstance(program.definitions[0].body, Composition)
    assert program.definitions[0].body.operator == CompositionOp.SEQ


def test_long_composition_chain_round_trip():
    """Test printing a long chain flat and parsing it back."""
    source = "process = " + " : ".join(["_"] * 2000) + ";"
    program, errors = parse_source(source)
    assert errors == []

    printed = to_source(program)
    assert printed == source + "\n"

    reparsed, errors = parse_source(printed)
    assert errors == []
    before = [(type(n).__name__, getattr(n, "operator", None)) for n in walk(program)]
    after = [(type(n).__name__, getattr(n, "operator", None)) for n in walk(reparsed)]
    assert after == before


def test_chain_right_operands_keep_parentheses():
    """Test that only the left spine of a chain prints without parentheses."""
    program, errors = parse_source("process = _ : (_ : _) : _;")
    assert errors == []
    assert to_source(program) == "process = _ : (_ : _) : _;\n"


def test_parse_example_files(examples_path):
    """Test that the bundled examples parse."""
    for name in ("sine.dsp", "echo.dsp"):
        program, errors = parse_file(examples_path / name)
        assert errors == [], name
        assert program.get_definition("process") is not None


@pytest.mark.parametrize("source", [
    "process = _ , _ : + : *(0.5) <: _ , _;",
    "process = + ~ (_' : *(-0.5)) :> _;",
    'declare name "demo";\nmix(a, b) = a * 0.5 + b * 0.5;\nprocess = mix(1, 2);',
    "process = f : g with { f = _ @ 10; g = (_ <: _, _) :> _; };",
    'process = hgroup("Main", par(i, 4, _ * (i + 1)) :> _);',
])
def test_round_trip(source):
    """Test that printed source parses back to an equal tree."""
    program, errors = parse_source(source)
    assert errors == []

    printed = to_source(program)
    reparsed, errors = parse_source(printed)

    assert errors == []
    assert reparsed == program


def test_round_trip_examples(examples_path):
    """Test printing the bundled examples."""
    for name in ("sine.dsp", "echo.dsp"):
        program, _ = parse_file(examples_path / name)
        reparsed, errors = parse_source(to_source(program))
        assert errors == [], name
        assert reparsed == program, name
