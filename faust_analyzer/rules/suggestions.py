"""Suggestion rules: (kind, message pattern) -> fix template."""

import re
from dataclasses import dataclass
from typing import Callable
from ..core.types import BoxDimensionSubtype, Diagnostic, DiagnosticKind


class _Fields(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


@dataclass(frozen=True)
class SuggestionRule:
    """Fills in a suggestion for diagnostics matching ``kind`` and ``pattern``.

    The template is formatted with the diagnostic's ``data`` plus the named
    groups of the pattern match.
    """
    rule_id: str
    kind: DiagnosticKind
    pattern: str
    template: str
    applies: Callable[[Diagnostic], bool] | None = None

    def match(self, diagnostic: Diagnostic) -> str | None:
        if diagnostic.kind != self.kind:
            return None
        found = re.search(self.pattern, diagnostic.message)
        if found is None:
            return None
        if self.applies is not None and not self.applies(diagnostic):
            return None
        return self.template.format_map(_Fields({**diagnostic.data, **found.groupdict()}))


def _subtype(subtype: BoxDimensionSubtype) -> Callable[[Diagnostic], bool]:
    return lambda d: d.subtype == subtype


def _merge_fits(d: Diagnostic) -> bool:
    outputs, inputs = d.data.get("outputs", 0), d.data.get("inputs", 0)
    return d.subtype == BoxDimensionSubtype.SEQUENTIAL and 0 < inputs < outputs and outputs % inputs == 0


def _split_fits(d: Diagnostic) -> bool:
    outputs, inputs = d.data.get("outputs", 0), d.data.get("inputs", 0)
    return d.subtype == BoxDimensionSubtype.SEQUENTIAL and 0 < outputs < inputs and inputs % outputs == 0


_RULES = [
    SuggestionRule("unexpected_character", DiagnosticKind.LEXICAL_ERROR,
                   r"Unexpected character (?P<quoted>.+)$",
                   "Remove or replace the character {quoted}"),
    SuggestionRule("unterminated_string", DiagnosticKind.LEXICAL_ERROR,
                   r"Unterminated string",
                   "Close the string with a matching '\"'"),
    SuggestionRule("missing_semicolon", DiagnosticKind.SYNTAX_ERROR,
                   r"Expected ';'",
                   "Add ';' at the end of the statement"),
    SuggestionRule("unclosed_parenthesis", DiagnosticKind.SYNTAX_ERROR,
                   r"Expected '\)'",
                   "Add the missing ')'"),
    SuggestionRule("unclosed_brace", DiagnosticKind.SYNTAX_ERROR,
                   r"Unclosed '\{'",
                   "Add the missing '}' to close the 'with' block"),
    SuggestionRule("unmatched_bracket", DiagnosticKind.SYNTAX_ERROR,
                   r"Unmatched '(?P<bracket>.)'",
                   "Remove the extra '{bracket}'"),
    SuggestionRule("missing_equals", DiagnosticKind.SYNTAX_ERROR,
                   r"Expected '=' in definition of '(?P<name>[^']+)'",
                   "Write the definition as '{name} = expression;'"),
    SuggestionRule("empty_arguments", DiagnosticKind.SYNTAX_ERROR,
                   r"Empty argument list in call to '(?P<name>[^']+)'",
                   "Use '{name}' without parentheses or pass its arguments"),
    SuggestionRule("undefined_symbol", DiagnosticKind.UNDEFINED_SYMBOL,
                   r"Undefined symbol '(?P<name>[^']+)'",
                   "Define '{name}' or import the library that provides it"),
    SuggestionRule("circular_definition", DiagnosticKind.CIRCULAR_DEFINITION,
                   r"Circular definition",
                   "Break the cycle; express feedback with the '~' operator instead"),
    SuggestionRule("sequential_merge", DiagnosticKind.BOX_DIMENSION,
                   r"^Sequential",
                   "Use ':>' to merge the {outputs} signals into {inputs}",
                   _merge_fits),
    SuggestionRule("sequential_split", DiagnosticKind.BOX_DIMENSION,
                   r"^Sequential",
                   "Use '<:' to distribute the {outputs} signal(s) over {inputs} inputs",
                   _split_fits),
    SuggestionRule("sequential", DiagnosticKind.BOX_DIMENSION,
                   r"Sequential|seq\(\)",
                   "Make A produce {inputs} output(s) or B accept {outputs} input(s)",
                   _subtype(BoxDimensionSubtype.SEQUENTIAL)),
    SuggestionRule("split", DiagnosticKind.BOX_DIMENSION,
                   r"^Split",
                   "Give B a multiple of {outputs} inputs, or use ':' when the counts match",
                   _subtype(BoxDimensionSubtype.SPLIT)),
    SuggestionRule("merge", DiagnosticKind.BOX_DIMENSION,
                   r"^Merge",
                   "Give B a number of inputs that divides {outputs}, or use ':' when the counts match",
                   _subtype(BoxDimensionSubtype.MERGE)),
    SuggestionRule("recursive", DiagnosticKind.BOX_DIMENSION,
                   r"^Recursive",
                   "The feedback box B must take at most outputs(A) signals and return at most inputs(A)",
                   _subtype(BoxDimensionSubtype.RECURSIVE)),
    SuggestionRule("call_arity", DiagnosticKind.BOX_DIMENSION,
                   r"'(?P<name>[^']+)' accepts",
                   "Pass at most {inputs} signal(s) to '{name}'"),
    SuggestionRule("ui_arguments", DiagnosticKind.BOX_DIMENSION,
                   r"'(?P<name>[^']+)' expects",
                   "Call '{name}' with {expected} arguments"),
    SuggestionRule("causality", DiagnosticKind.CAUSALITY_WARNING,
                   r"contains no delay",
                   "Insert a delay in the feedback path, e.g. 'B : mem' or B'"),
    SuggestionRule("min_above_max", DiagnosticKind.PARAMETER_RANGE,
                   r"greater than max",
                   "Swap the min and max arguments"),
    SuggestionRule("default_out_of_range", DiagnosticKind.PARAMETER_RANGE,
                   r"range \[(?P<low>[^,]+), (?P<high>[^\]]+)\]",
                   "Choose a default between {low} and {high}"),
    SuggestionRule("duplicate_path", DiagnosticKind.DUPLICATE_PATH,
                   r"UI path '(?P<path>[^']+)'",
                   "Give each control a distinct label or place them in different groups"),
    SuggestionRule("duplicate_definition", DiagnosticKind.DUPLICATE_DEFINITION,
                   r"'(?P<name>[^']+)' is already defined",
                   "Rename or remove one of the definitions of '{name}'"),
    SuggestionRule("import_not_found", DiagnosticKind.IMPORT_NOT_FOUND,
                   r"Library '(?P<library>[^']+)' not found",
                   "Check the library name; the standard libraries come from import(\"stdfaust.lib\");"),
    SuggestionRule("timeout", DiagnosticKind.ANALYSIS_TIMEOUT,
                   r"",
                   "Split the program into smaller files or raise the analysis timeout"),
]

SUGGESTION_REGISTRY: dict[str, SuggestionRule] = {rule.rule_id: rule for rule in _RULES}


def get_rule(rule_id: str) -> SuggestionRule | None:
    """Get a suggestion rule by ID."""
    return SUGGESTION_REGISTRY.get(rule_id)


def register_rule(rule: SuggestionRule) -> None:
    """Register a new suggestion rule; later rules are tried last."""
    SUGGESTION_REGISTRY[rule.rule_id] = rule


def list_rules() -> list[str]:
    """List all registered rule IDs."""
    return list(SUGGESTION_REGISTRY.keys())


def suggest(diagnostic: Diagnostic) -> str | None:
    """First matching suggestion for ``diagnostic``, if any."""
    for rule in SUGGESTION_REGISTRY.values():
        suggestion = rule.match(diagnostic)
        if suggestion is not None:
            return suggestion
    return None
