"""Exceptions raised by the analyzer API.

User input never raises: problems in Faust source are reported as
``Diagnostic`` values. These exceptions cover misuse of the Python API and
the internal deadline.
"""


class FaustAnalyzerError(Exception):
    """Base class for analyzer exceptions."""


class AnalysisTimeout(FaustAnalyzerError):
    """The pipeline ran past its wall-clock deadline."""

    def __init__(self, seconds: float):
        self.seconds = seconds
        super().__init__(f"analysis exceeded {seconds:g}s")


class LibraryNotFound(FaustAnalyzerError):
    """A library was requested that the import dictionary does not know."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"library '{name}' is not in the import dictionary")
