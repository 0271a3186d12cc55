"""
Exceptions raised while loading a BMS chart.

Every error aborts the load in progress; no partial chart is returned.
"""

from __future__ import annotations


class ChartParseError(ValueError):
    """A directive could not be parsed."""

    def __init__(self, message: str, line_no: int | None = None):
        self.line_no = line_no
        if line_no is not None:
            message = f"line {line_no}: {message}"
        super().__init__(message)


class DuplicateTempoKey(ChartParseError):
    """The same #BPMxx suffix was declared twice."""


class DuplicateTimingOverride(ChartParseError):
    """Two timing-percent directives target the same measure."""


class UnknownTempoKey(ChartParseError):
    """A lookup tempo cell references a #BPMxx that was never declared."""
