"""
Tempo timeline and tick → seconds conversion.

A tick is a chart position in measures: ``measure_index + fraction``.
Each tempo segment says how many seconds one measure lasts from its tick
onward; a timing override scales a single measure by a percent.

    seconds_per_unit = 60.0 / BPM * 4.0   (4 beats per measure)

Every per-measure contribution is rounded to the microsecond before being
summed so long charts do not drift.
"""

from __future__ import annotations

import bisect
import math
from dataclasses import dataclass, field
from typing import Iterator, Mapping

BEATS_PER_MEASURE = 4.0


@dataclass(frozen=True)
class TempoSegment:
    """A tempo change point."""
    tick: float
    seconds_per_unit: float

    @classmethod
    def from_bpm(cls, tick: float, bpm: float) -> TempoSegment:
        if bpm <= 0:
            raise ValueError(f"BPM must be positive, got {bpm}")
        return cls(tick=tick, seconds_per_unit=60.0 / bpm * BEATS_PER_MEASURE)

    @property
    def bpm(self) -> float:
        return 60.0 / self.seconds_per_unit * BEATS_PER_MEASURE


@dataclass(frozen=True)
class TimingOverride:
    """Timing percent of one measure (channel 02)."""
    beat: int
    percent: float


@dataclass
class TempoTimeline:
    """
    Tempo segments kept in ascending tick order.

    The decoder owns one timeline per load and mutates it while scanning,
    so a note only sees the segments registered before it in file order.
    """
    _segments: list[TempoSegment] = field(default_factory=list, init=False)

    def __len__(self) -> int:
        return len(self._segments)

    def __iter__(self) -> Iterator[TempoSegment]:
        return iter(self._segments)

    @property
    def segments(self) -> list[TempoSegment]:
        return list(self._segments)

    @property
    def has_origin(self) -> bool:
        return bool(self._segments) and self._segments[0].tick == 0.0

    def insert(self, segment: TempoSegment) -> bool:
        """
        Insert a segment, keeping the timeline sorted.

        A segment at an already used tick lands after the existing ones,
        so it governs from that tick on. An exact duplicate (same tick and
        same tempo) is not inserted again.

        Returns:
            True if the segment was added.
        """
        if segment in self._segments:
            return False
        index = bisect.bisect_right(
            self._segments, segment.tick, key=lambda s: s.tick
        )
        self._segments.insert(index, segment)
        return True

    def before(self, tick: float) -> list[TempoSegment]:
        """Segments strictly earlier than ``tick``, ascending."""
        index = bisect.bisect_left(self._segments, tick, key=lambda s: s.tick)
        return self._segments[:index]


def round_to_microsecond(seconds: float) -> float:
    return round(seconds, 6)


def _span_seconds(
    start: float,
    end: float,
    seconds_per_unit: float,
    overrides: Mapping[int, TimingOverride],
) -> float:
    """Integrate one tempo segment over ticks [start, end)."""
    total = 0.0
    for k in range(math.floor(start), math.ceil(end)):
        # Edge measures only count the part the span actually covers
        weight = min(end, k + 1) - max(start, k)
        if weight <= 0:
            continue
        override = overrides.get(k)
        percent = override.percent if override is not None else 1.0
        total += round_to_microsecond(weight * percent * seconds_per_unit)
    return total


def tick_to_time(
    target_tick: float,
    segments: TempoTimeline | list[TempoSegment],
    overrides: Mapping[int, TimingOverride],
) -> float:
    """
    Convert a chart tick to absolute seconds.

    Walks the segments earlier than ``target_tick`` from the latest back to
    the earliest. Each one covers the ticks between its own position and
    the part already covered (the target itself for the latest segment).

    Args:
        target_tick: Position to convert.
        segments: Tempo timeline as it stands right now.
        overrides: Timing percent per measure index.

    Returns:
        Absolute time in seconds, microsecond quantized.
    """
    if isinstance(segments, TempoTimeline):
        active = segments.before(target_tick)
    else:
        active = [s for s in segments if s.tick < target_tick]

    time = 0.0
    covered_from = target_tick
    for segment in reversed(active):
        if covered_from > segment.tick:
            time += _span_seconds(
                segment.tick, covered_from, segment.seconds_per_unit, overrides
            )
        covered_from = segment.tick
    return round_to_microsecond(time)
