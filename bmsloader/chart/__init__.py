"""
BMS chart parsing: directives, tempo timeline and tick → time conversion.
"""

from .bms_parser import BmsChart, BmsParser, ComputedNote, sort_notes
from .errors import (
    ChartParseError,
    DuplicateTempoKey,
    DuplicateTimingOverride,
    UnknownTempoKey,
)
from .tables import BmsId, ChannelType
from .tempo import TempoSegment, TempoTimeline, TimingOverride, tick_to_time

__all__ = [
    "BmsChart",
    "BmsParser",
    "ComputedNote",
    "sort_notes",
    "ChartParseError",
    "DuplicateTempoKey",
    "DuplicateTimingOverride",
    "UnknownTempoKey",
    "BmsId",
    "ChannelType",
    "TempoSegment",
    "TempoTimeline",
    "TimingOverride",
    "tick_to_time",
]
