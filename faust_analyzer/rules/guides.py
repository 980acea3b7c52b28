"""Debugging guides for raw Faust compiler messages."""

import re
from dataclasses import dataclass
from ..core.types import DiagnosticKind, FixExample


@dataclass(frozen=True)
class Guide:
    category: str
    title: str
    diagnosis: str
    root_cause: str
    fixes: tuple[str, ...]
    examples: tuple[FixExample, ...] = ()


@dataclass
class CompilerMessage:
    """One line of compiler output split into its parts."""
    severity: str
    message: str
    raw: str
    file: str | None = None
    line: int | None = None


_LINE_PATTERNS = [
    (re.compile(r"ERROR\s*:\s*([^:]+?)\s*:\s*(\d+)\s*:\s*(.+)", re.I), "error", True),
    (re.compile(r"([^:]+):(\d+):\s*(.+)"), "error", True),
    (re.compile(r"ERROR\s*:\s*(.+)", re.I), "error", False),
    (re.compile(r"WARNING\s*:\s*(.+)", re.I), "warning", False),
]


def parse_compiler_output(text: str) -> list[CompilerMessage]:
    """Split raw compiler output into located messages.

    Lines matching none of the known shapes are ignored; if nothing matches
    at all, the whole text is returned as a single unlocated message.
    """
    messages = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        for pattern, severity, located in _LINE_PATTERNS:
            match = pattern.search(line)
            if match is None:
                continue
            if located:
                messages.append(CompilerMessage(
                    severity=severity,
                    file=match.group(1).strip(),
                    line=int(match.group(2)),
                    message=match.group(3).strip(),
                    raw=line,
                ))
            else:
                messages.append(CompilerMessage(severity=severity, message=match.group(1).strip(), raw=line))
            break
    if not messages and text.strip():
        messages.append(CompilerMessage(severity="error", message=text.strip(), raw=text.strip()))
    return messages


def _has(*words: str):
    return lambda message: all(word in message for word in words)


def _any(*words: str):
    return lambda message: any(word in message for word in words)


# ordered: the first matching predicate decides
_CATEGORIES = [
    ("missing_semicolon", lambda m: "expected" in m and "';'" in m),
    ("missing_semicolon", _has("syntax error", "unexpected ident")),
    ("undefined_symbol", _any("undefined symbol", "is undefined")),
    ("unclosed_parenthesis", lambda m: "expected" in m and "')'" in m),
    ("missing_process", _has("process", "not defined")),
    ("domain_sqrt", _has("domain", "sqrt")),
    ("domain_log", _has("domain", "log")),
    ("division_by_zero", _has("division", "zero")),
    ("causality", _any("causality", "zero-delay", "delay-free loop")),
    ("unbounded_recursion", _has("recursive", "unbounded")),
    ("box_dimension", _any("dimension", "mismatch", "incompatible", "number of outputs", "number of inputs")),
    ("import_failed", lambda m: "import" in m and ("failed" in m or "not found" in m)),
]


def categorize(message: str) -> str:
    """Guide category for a compiler message, ``unknown`` if none applies."""
    lowered = message.lower()
    for category, predicate in _CATEGORIES:
        if predicate(lowered):
            return category
    return "unknown"


def _example(before: str, after: str) -> FixExample:
    return FixExample(before=before, after=after)


GUIDES: dict[str, Guide] = {
    "missing_semicolon": Guide(
        category="missing_semicolon",
        title="Missing semicolon",
        diagnosis="A statement is not terminated by ';', so the next line is read as its continuation.",
        root_cause="Every definition, import and declare statement must end with ';'.",
        fixes=(
            "Look at the reported line and the line before it",
            "Add ';' after the last token of the unfinished statement",
        ),
        examples=(
            _example('freq = hslider("frequency", 440, 20, 20000, 1)\nprocess = freq : sin;',
                     'freq = hslider("frequency", 440, 20, 20000, 1);\nprocess = freq : sin;'),
            _example("myfilter(x) = x : cos\nprocess = myfilter;",
                     "myfilter(x) = x : cos;\nprocess = myfilter;"),
        ),
    ),
    "undefined_symbol": Guide(
        category="undefined_symbol",
        title="Undefined symbol",
        diagnosis="A name is used that is neither defined in the program nor provided by an imported library.",
        root_cause="The library is not imported, the name is misspelled, or the definition is missing.",
        fixes=(
            'Add import("stdfaust.lib"); when the name has a library prefix such as os. or fi.',
            "Check the spelling against the library documentation",
            "Define the missing function",
        ),
        examples=(
            _example("process = os.osc(440);", 'import("stdfaust.lib");\nprocess = os.osc(440);'),
            _example("process = lowpass(4, 1000);", 'import("stdfaust.lib");\nprocess = fi.lowpass(4, 1000);'),
        ),
    ),
    "unclosed_parenthesis": Guide(
        category="unclosed_parenthesis",
        title="Unclosed parenthesis",
        diagnosis="An opening '(' has no matching ')'.",
        root_cause="Parentheses in an expression or argument list are unbalanced.",
        fixes=(
            "Count opening and closing parentheses on the reported line",
            "Add the missing ')' before the terminating ';'",
        ),
        examples=(
            _example("process = (_ , _ : +;", "process = (_ , _) : +;"),
        ),
    ),
    "missing_process": Guide(
        category="missing_process",
        title="Missing process definition",
        diagnosis="The program has no 'process' definition, which is its entry point.",
        root_cause="'process' was never defined, or it is misspelled.",
        fixes=(
            "Define process = ...; as the main signal processor",
            "Check the spelling of 'process'",
        ),
        examples=(
            _example("main = _ * 0.5;", "main = _ * 0.5;\nprocess = main;"),
        ),
    ),
    "domain_sqrt": Guide(
        category="domain_sqrt",
        title="sqrt domain violation",
        diagnosis="sqrt may receive a negative value.",
        root_cause="The input range of sqrt includes values below zero.",
        fixes=(
            "Restrict the input range so its minimum is 0",
            "Apply abs or max(0) before sqrt",
        ),
        examples=(
            _example('val = hslider("value", 0.5, -1, 1, 0.1) : sqrt;',
                     'val = hslider("value", 0.5, 0, 1, 0.1) : sqrt;'),
        ),
    ),
    "domain_log": Guide(
        category="domain_log",
        title="log domain violation",
        diagnosis="log may receive zero or a negative value.",
        root_cause="The input range of log includes values at or below zero.",
        fixes=(
            "Restrict the input range so its minimum is above 0",
            "Add a small epsilon before log",
        ),
        examples=(
            _example("process = _ : log;", "process = _ : max(ma.EPSILON) : log;"),
        ),
    ),
    "division_by_zero": Guide(
        category="division_by_zero",
        title="Division by zero",
        diagnosis="A divisor can be zero.",
        root_cause="The denominator's range includes 0.",
        fixes=(
            "Keep the denominator away from zero with max(ma.EPSILON)",
            "Change the control range so it excludes 0",
        ),
        examples=(
            _example('g = hslider("g", 1, 0, 2, 0.1);\nprocess = 1 / g;',
                     'g = hslider("g", 1, 0.01, 2, 0.01);\nprocess = 1 / g;'),
        ),
    ),
    "causality": Guide(
        category="causality",
        title="Causality violation",
        diagnosis="A feedback loop has no delay, so a sample would depend on itself.",
        root_cause="The feedback path of '~' contains no '@', 'mem' or prime.",
        fixes=(
            "Insert mem or a prime (') in the feedback path",
            "Use an explicit delay such as @(1)",
        ),
        examples=(
            _example("process = + ~ _;", "process = + ~ mem;"),
            _example("process = + ~ (_ * 0.5);", "process = + ~ (_ * 0.5)';"),
        ),
    ),
    "unbounded_recursion": Guide(
        category="unbounded_recursion",
        title="Unbounded recursion",
        diagnosis="A recursive definition never reaches a base case.",
        root_cause="A function refers to itself without terminating, instead of using '~' for feedback.",
        fixes=(
            "Express signal feedback with the '~' operator",
            "Use par/seq/sum/prod with a constant count for repetition",
        ),
        examples=(
            _example("f = f : mem;", "f = _ ~ mem;"),
        ),
    ),
    "box_dimension": Guide(
        category="box_dimension",
        title="Box dimension mismatch",
        diagnosis="Two boxes are composed with incompatible numbers of inputs and outputs.",
        root_cause=("A ':' needs outputs(A) == inputs(B); '<:' needs outputs(A) to divide inputs(B); "
                    "':>' needs outputs(A) to be a multiple of inputs(B)."),
        fixes=(
            "Count the inputs and outputs of each side of the composition",
            "Use ':>' to merge extra signals or '<:' to split a signal",
            "Rearrange the boxes with ',' where they should run in parallel",
        ),
        examples=(
            _example("process = (_, _) : _;", "process = (_, _) :> _;"),
            _example("process = _ : (_, _);", "process = _ <: (_, _);"),
        ),
    ),
    "import_failed": Guide(
        category="import_failed",
        title="Library import failed",
        diagnosis="An imported library file could not be found.",
        root_cause="The library name is misspelled or not installed.",
        fixes=(
            'Import the standard libraries with import("stdfaust.lib");',
            "Check the file name and the library search path",
        ),
        examples=(
            _example('import("stdfaust.lb");', 'import("stdfaust.lib");'),
        ),
    ),
    "unknown": Guide(
        category="unknown",
        title="Unrecognized error",
        diagnosis="The message does not match a known error category.",
        root_cause="Undetermined from the message alone.",
        fixes=(
            "Check the line reported by the compiler and the line before it",
            "Analyze the source for syntax and dimension errors",
        ),
    ),
}

GUIDE_FOR_KIND = {
    DiagnosticKind.UNDEFINED_SYMBOL: "undefined_symbol",
    DiagnosticKind.BOX_DIMENSION: "box_dimension",
    DiagnosticKind.CAUSALITY_WARNING: "causality",
    DiagnosticKind.CIRCULAR_DEFINITION: "unbounded_recursion",
    DiagnosticKind.IMPORT_NOT_FOUND: "import_failed",
}


def category_for(kind: DiagnosticKind, message: str) -> str:
    """Guide category for an analyzer diagnostic."""
    return GUIDE_FOR_KIND.get(kind) or categorize(message)


def get_guide(category: str) -> Guide:
    """Guide for ``category``, falling back to the unknown-error guide."""
    return GUIDES.get(category, GUIDES["unknown"])


def list_guides() -> list[str]:
    """List all guide categories."""
    return list(GUIDES.keys())
