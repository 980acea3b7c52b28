"""Tests for the structural summary and UI parameter checks."""

from faust_analyzer import analyze_structure
from faust_analyzer.core.structure import clean_label
from faust_analyzer.core.types import DetailLevel, DiagnosticKind, Dimension


def test_parameter_range_error():
    """Test a slider whose default lies below its minimum."""
    report = analyze_structure(
        'import("stdfaust.lib");\nfreq = hslider("freq", 10, 20, 20000, 1);\nprocess = os.osc(freq);'
    )

    assert len(report.diagnostics) == 1
    error = report.diagnostics[0]
    assert error.kind == DiagnosticKind.PARAMETER_RANGE
    assert error.message == "Default value 10 of 'freq' is outside its range [20, 20000]"
    assert (error.line, error.column) == (2, 8)

    parameter = report.parameters[0]
    assert (parameter.default, parameter.min, parameter.max, parameter.step) == (10, 20, 20000, 1)
    assert parameter.definition == "freq"


def test_min_greater_than_max():
    """Test an inverted range."""
    report = analyze_structure('process = hslider("x", 5, 10, 0, 1);')
    assert [d.message for d in report.diagnostics] == ["'x' has min 10 greater than max 0"]


def test_range_from_named_constants():
    """Test that bounds given by constant definitions are evaluated."""
    report = analyze_structure('lo = 20;\nhi = 1000;\nprocess = hslider("f", 100, lo, hi, 1);')

    assert report.diagnostics == []
    assert (report.parameters[0].min, report.parameters[0].max) == (20, 1000)


def test_group_paths():
    """Test that group labels prefix parameter paths."""
    source = (
        'process = hgroup("h:Mixer", vgroup("Channel 1", hslider("[0]gain", 0.5, 0, 1, 0.01))'
        ' * checkbox("mute"));'
    )
    report = analyze_structure(source)

    assert report.diagnostics == []
    assert report.paths == ["Mixer/Channel 1/gain", "Mixer/mute"]
    assert report.parameters[0].label == "gain"


def test_duplicate_path():
    """Test two controls with the same path."""
    report = analyze_structure(
        'process = hslider("gain", 0.5, 0, 1, 0.01) + hslider("gain", 0.2, 0, 1, 0.01);'
    )

    assert len(report.diagnostics) == 1
    error = report.diagnostics[0]
    assert error.kind == DiagnosticKind.DUPLICATE_PATH
    assert error.message == "UI path 'gain' is already used at line 1"
    assert error.related_locations[0].column == 11


def test_same_label_in_different_groups():
    """Test that groups keep equal labels apart."""
    report = analyze_structure('process = hgroup("A", button("go")) + hgroup("B", button("go"));')
    assert report.diagnostics == []
    assert report.paths == ["A/go", "B/go"]


def test_bargraph_parameter():
    """Test that bargraphs are listed with their range."""
    report = analyze_structure('process = _ <: attach(_, hbargraph("level", 0, 1));')

    assert report.diagnostics == []
    parameter = report.parameters[0]
    assert parameter.kind == "hbargraph"
    assert (parameter.min, parameter.max, parameter.default) == (0, 1, None)


def test_basic_detail():
    """Test the basic report contents."""
    report = analyze_structure('import("stdfaust.lib");\nimport("nope.lib");\ngain(g) = *(g);\nprocess = gain(0.5);')

    assert report.detail_level == DetailLevel.BASIC
    assert [(i.path, i.found) for i in report.imports] == [("stdfaust.lib", True), ("nope.lib", False)]
    gain = report.get_definition("gain")
    assert gain.params == ["g"]
    assert gain.dimension == Dimension(inputs=2, outputs=1)
    assert report.has_process is None
    assert report.unused_definitions is None
    assert report.metrics is None


def test_full_detail():
    """Test locals, unused definitions and metrics in a full report."""
    source = (
        'declare name "demo";\n'
        "gain = 0.5;\n"
        "helper = _;\n"
        "process = f : *(gain) with { f = _; g = _; };\n"
    )
    report = analyze_structure(source, detail_level="full")

    assert report.has_process is True
    assert report.unused_definitions == ["helper"]
    assert [local.name for local in report.get_definition("process").locals] == ["f", "g"]
    assert [(d.key, d.value) for d in report.declarations] == [("name", "demo")]
    assert report.metrics.lines == 4
    assert report.metrics.strings == 1

    basic = analyze_structure(source)
    assert basic.get_definition("process").locals == []


def test_missing_process():
    """Test that a program without 'process' is summarized, not rejected."""
    report = analyze_structure("a = _;", detail_level=DetailLevel.FULL)
    assert report.has_process is False
    assert report.diagnostics == []


def test_example_files(examples_path):
    """Test the bundled examples."""
    sine = analyze_structure((examples_path / "sine.dsp").read_text())
    assert sine.diagnostics == []
    assert sine.paths == ["freq", "volume"]
    assert sine.get_definition("process").dimension == Dimension(inputs=0, outputs=2)

    echo = analyze_structure((examples_path / "echo.dsp").read_text(), detail_level="full")
    assert echo.diagnostics == []
    assert echo.paths == ["gain", "feedback"]
    assert echo.get_definition("process").dimension == Dimension(inputs=1, outputs=1)
    assert echo.unused_definitions == []
    assert [d.key for d in echo.declarations] == ["name", "author"]


def test_clean_label():
    """Test metadata removal from labels."""
    assert clean_label("[0]gain [unit:dB]") == "gain"
    assert clean_label("freq") == "freq"
