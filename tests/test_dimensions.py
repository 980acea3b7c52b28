"""Tests for box-algebra dimension analysis."""

import pytest
from faust_analyzer.api import analyze
from faust_analyzer.core.config import AnalyzerConfig
from faust_analyzer.core.dimensions import compose
from faust_analyzer.core.types import BoxDimensionSubtype, DiagnosticKind, Dimension, Severity
from faust_analyzer.dsl.ast import CompositionOp


STD = 'import("stdfaust.lib");\n'


def dim(inputs, outputs):
    return Dimension(inputs=inputs, outputs=outputs)


@pytest.fixture
def process_dimension(pipeline):
    """Dimension of 'process' and the diagnostics of the run."""

    def run(source: str):
        program, _, dims, diagnostics = pipeline(source)
        return dims.get(program.get_definition("process").node_id), diagnostics

    return run


def test_compose_rules():
    """Test the five composition laws on plain dimensions."""
    assert compose(CompositionOp.SEQ, dim(1, 2), dim(2, 1)) == dim(1, 1)
    assert compose(CompositionOp.SEQ, dim(1, 2), dim(1, 1)) is None
    assert compose(CompositionOp.PAR, dim(1, 1), dim(2, 3)) == dim(3, 4)
    assert compose(CompositionOp.SPLIT, dim(1, 2), dim(4, 1)) == dim(1, 1)
    assert compose(CompositionOp.SPLIT, dim(1, 2), dim(3, 1)) is None
    assert compose(CompositionOp.MERGE, dim(0, 4), dim(2, 1)) == dim(0, 1)
    assert compose(CompositionOp.MERGE, dim(0, 3), dim(2, 1)) is None
    assert compose(CompositionOp.RECUR, dim(2, 1), dim(1, 1)) == dim(1, 1)
    assert compose(CompositionOp.RECUR, dim(1, 1), dim(2, 2)) is None


@pytest.mark.parametrize("source,expected", [
    ("process = _;", dim(1, 1)),
    ("process = 0.5;", dim(0, 1)),
    ('process = "abc";', dim(0, 1)),
    ("process = _ , _ : +;", dim(2, 1)),
    ("process = _ <: _, _, _;", dim(1, 3)),
    ("process = _, _, _, _ :> _;", dim(4, 1)),
    ("process = _ * 0.5;", dim(1, 1)),
    ("process = _';", dim(1, 1)),
    ("process = +(1);", dim(1, 1)),
    ("process = sin(0.5);", dim(0, 1)),
    ("process = _ : !;", dim(1, 0)),
    ("process = + ~ mem;", dim(1, 1)),
])
def test_valid_dimensions(process_dimension, source, expected):
    """Test dimensions of well-formed diagrams."""
    dimension, diagnostics = process_dimension(source)
    assert diagnostics == []
    assert dimension == expected


def test_sequential_mismatch(process_dimension):
    """Test the error for a sequential composition with mismatched counts."""
    dimension, diagnostics = process_dimension("process = (_, _) : sin;")

    assert dimension is None
    assert len(diagnostics) == 1
    error = diagnostics[0]
    assert error.kind == DiagnosticKind.BOX_DIMENSION
    assert error.subtype == BoxDimensionSubtype.SEQUENTIAL
    assert error.data["outputs"] == 2
    assert error.data["inputs"] == 1
    assert error.message.endswith("but A has 2 outputs and B has 1 input")
    assert (error.line, error.column) == (1, 18)


def test_split_mismatch(process_dimension):
    """Test that split needs outputs(A) to divide inputs(B)."""
    _, diagnostics = process_dimension("process = (_, _) <: _, _, _;")
    assert [d.subtype for d in diagnostics] == [BoxDimensionSubtype.SPLIT]


def test_merge_mismatch(process_dimension):
    """Test that merge needs outputs(A) to be a multiple of inputs(B)."""
    _, diagnostics = process_dimension("process = _, _, _ :> _, _;")
    assert [d.subtype for d in diagnostics] == [BoxDimensionSubtype.MERGE]


def test_recursive_mismatch(process_dimension):
    """Test that the feedback box cannot need more signals than are available."""
    _, diagnostics = process_dimension("process = _ ~ (_, _);")
    assert [d.subtype for d in diagnostics] == [BoxDimensionSubtype.RECURSIVE]


def test_error_reported_once(process_dimension):
    """Test that a failing composition does not cascade into its parents."""
    _, diagnostics = process_dimension("process = (_, _) : sin : _ : _;")
    assert len(diagnostics) == 1


def test_library_calls(process_dimension):
    """Test partial application of imported functions."""
    dimension, diagnostics = process_dimension(STD + "process = os.osc(440) : fi.lowpass(2, 1000);")
    assert diagnostics == []
    assert dimension == dim(0, 1)


def test_library_dimension_mismatch(process_dimension):
    """Test two oscillators fed into a single-input filter."""
    _, diagnostics = process_dimension(STD + "process = (os.osc(1), os.osc(2)) : _;")

    assert len(diagnostics) == 1
    assert diagnostics[0].data["outputs"] == 2
    assert diagnostics[0].data["inputs"] == 1


def test_too_many_arguments(process_dimension):
    """Test a call supplying more signals than the box accepts."""
    _, diagnostics = process_dimension("process = sin(1, 2);")

    assert len(diagnostics) == 1
    assert diagnostics[0].subtype == BoxDimensionSubtype.CALL
    assert diagnostics[0].message == "'sin' accepts 1 input but its arguments supply 2 signals"


def test_user_function_with_parameters(pipeline):
    """Test that parameters count as leading inputs of a definition."""
    program, _, dims, diagnostics = pipeline("gain(g) = _ * g;\nprocess = gain(0.5);")

    assert diagnostics == []
    assert dims[program.get_definition("gain").node_id] == dim(2, 1)
    assert dims[program.get_definition("process").node_id] == dim(1, 1)


def test_parameter_used_as_box(process_dimension):
    """Test that a higher-order parameter leaves the dimension unknown without errors."""
    dimension, diagnostics = process_dimension("apply(f) = _ : f;\nprocess = apply(sin);")
    assert diagnostics == []
    assert dimension is None


def test_ui_controls(process_dimension):
    """Test dimensions of UI primitives."""
    source = (
        'process = hgroup("main", (button("go"), hslider("f", 1, 0, 10, 0.1)))'
        ' : + : hbargraph("level", 0, 1);'
    )
    dimension, diagnostics = process_dimension(source)
    assert diagnostics == []
    assert dimension == dim(0, 1)


def test_ui_argument_count(process_dimension):
    """Test that sliders need exactly five arguments."""
    _, diagnostics = process_dimension('process = hslider("f", 1, 0, 10);')

    assert len(diagnostics) == 1
    assert diagnostics[0].subtype == BoxDimensionSubtype.CALL
    assert diagnostics[0].message == "'hslider' expects 5 arguments, got 4"


@pytest.mark.parametrize("source,expected", [
    ("process = par(i, 4, _);", dim(4, 4)),
    ("N = 3;\nprocess = par(i, N, _ * (i + 1));", dim(3, 3)),
    ("process = seq(i, 3, _ * 0.5);", dim(1, 1)),
    ("process = sum(i, 3, _);", dim(3, 1)),
    ("process = prod(i, 2, _ + i);", dim(2, 1)),
])
def test_iterations(process_dimension, source, expected):
    """Test par, seq, sum and prod with constant counts."""
    dimension, diagnostics = process_dimension(source)
    assert diagnostics == []
    assert dimension == expected


def test_seq_iteration_mismatch(process_dimension):
    """Test chaining a box whose outputs do not match its inputs."""
    _, diagnostics = process_dimension("process = seq(i, 2, (_ <: _, _));")
    assert len(diagnostics) == 1
    assert diagnostics[0].subtype == BoxDimensionSubtype.SEQUENTIAL


def test_circular_definition(pipeline):
    """Test that a cycle is reported once with its path."""
    _, _, _, diagnostics = pipeline("a = b;\nb = a;\nprocess = a;")

    assert len(diagnostics) == 1
    assert diagnostics[0].kind == DiagnosticKind.CIRCULAR_DEFINITION
    assert diagnostics[0].message == "Circular definition: a -> b -> a"
    assert diagnostics[0].line == 2


def test_self_reference(pipeline):
    """Test a definition that refers to itself."""
    _, _, _, diagnostics = pipeline("f = f : _;\nprocess = f;")
    assert [d.message for d in diagnostics] == ["Circular definition: f -> f"]


def test_feedback_without_delay(process_dimension):
    """Test the causality warning on a delay-free feedback path."""
    dimension, diagnostics = process_dimension("process = + ~ _;")

    assert dimension == dim(1, 1)
    assert len(diagnostics) == 1
    assert diagnostics[0].kind == DiagnosticKind.CAUSALITY_WARNING
    assert diagnostics[0].severity == Severity.WARNING


@pytest.mark.parametrize("source", [
    "process = + ~ _';",
    "process = + ~ (_ @ 10);",
    "d = mem;\nprocess = + ~ d;",
    STD + "process = + ~ de.delay(100, 10);",
    STD + "process = + ~ si.unknownfilter;",
])
def test_feedback_with_delay(process_dimension, source):
    """Test delays found directly, through definitions and in libraries."""
    _, diagnostics = process_dimension(source)
    assert not [d for d in diagnostics if d.kind == DiagnosticKind.CAUSALITY_WARNING]


def test_delay_free_helper_in_feedback(process_dimension):
    """Test that a helper definition without delay still warns."""
    _, diagnostics = process_dimension("a = +;\nb = _ * 0.5;\nprocess = a ~ b;")
    assert [d.kind for d in diagnostics] == [DiagnosticKind.CAUSALITY_WARNING]


def wires(count: int) -> str:
    return "(" + ", ".join(["_"] * count) + ")"


@pytest.mark.parametrize("outputs", [1, 2, 3])
@pytest.mark.parametrize("inputs", [1, 2, 3, 4])
def test_sequential_error_iff_counts_differ(process_dimension, outputs, inputs):
    """Test that ':' fails exactly when outputs(A) != inputs(B)."""
    _, diagnostics = process_dimension(f"process = {wires(outputs)} : {wires(inputs)};")
    assert bool(diagnostics) == (outputs != inputs)


@pytest.mark.parametrize("outputs", [1, 2, 3])
@pytest.mark.parametrize("inputs", [1, 2, 3, 4, 6])
def test_split_error_iff_not_divisible(process_dimension, outputs, inputs):
    """Test that '<:' fails exactly when inputs(B) is not a multiple of outputs(A)."""
    _, diagnostics = process_dimension(f"process = {wires(outputs)} <: {wires(inputs)};")
    assert [d.subtype for d in diagnostics] == ([BoxDimensionSubtype.SPLIT] if inputs % outputs else [])


def test_string_literal_is_a_signal(process_dimension):
    """Test that a string literal is sized like a number."""
    dimension, diagnostics = process_dimension('process = "abc" : +;')

    assert dimension is None
    assert len(diagnostics) == 1
    assert diagnostics[0].subtype == BoxDimensionSubtype.SEQUENTIAL
    assert diagnostics[0].data["outputs"] == 1
    assert diagnostics[0].data["inputs"] == 2


def definition_chain(length: int, last: str) -> str:
    lines = [f"d{i} = d{i + 1};" for i in range(length - 1)]
    lines.append(f"d{length - 1} = {last};")
    return "\n".join(lines) + "\n"


def test_long_definition_chain():
    """Test sizing a chain of a thousand definitions."""
    source = definition_chain(1000, "_") + "process = d0;"
    result = analyze(source, AnalyzerConfig(timeout_seconds=None))

    assert result.diagnostics == []
    assert result.valid


@pytest.mark.parametrize("last,warnings", [("_", 1), ("mem", 0)])
def test_long_definition_chain_in_feedback(last, warnings):
    """Test the delay scan through a chain of a thousand definitions."""
    source = definition_chain(1000, last) + "process = + ~ d0;"
    result = analyze(source, AnalyzerConfig(timeout_seconds=None))

    assert result.errors == []
    assert [d.kind for d in result.warnings] == [DiagnosticKind.CAUSALITY_WARNING] * warnings


def test_long_definition_cycle(pipeline):
    """Test that a cycle through a thousand definitions is reported once."""
    _, _, _, diagnostics = pipeline(definition_chain(1000, "d0") + "process = d0;")

    assert [d.kind for d in diagnostics] == [DiagnosticKind.CIRCULAR_DEFINITION]
    assert diagnostics[0].data["cycle"][0] == "d0"
    assert len(diagnostics[0].data["cycle"]) == 1000
