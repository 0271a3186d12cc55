"""
BMS (Be-Music Source) chart parser for custom albums.

Parses the .bms charts shipped inside album packages into:
  - Header metadata (#KEY VALUE lines), in file order
  - A tempo timeline built from #BPM / #BPMxx headers and tempo channels
  - Note cells resolved to absolute seconds, sorted for playback

Line syntax:
  #KEY VALUE      header; #BPM seeds the tempo, #BPMxx fills the lookup table
  #BBBCC:VALUE    3-digit measure + 2-char channel + cell string
                  cells are 2-char pairs, "00" = empty
                  channel 02 carries a decimal timing percent instead

Cells are converted to seconds as they are read, against whatever tempo
segments have been registered so far in file order.
"""

from __future__ import annotations

import hashlib
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from .errors import (
    ChartParseError,
    DuplicateTempoKey,
    DuplicateTimingOverride,
    UnknownTempoKey,
)
from .tables import (
    AUTO_CHANNEL,
    CHANNELS,
    TEMPO_CHANNELS,
    ChannelType,
    resolve_channel,
)
from .tempo import TempoSegment, TempoTimeline, TimingOverride, tick_to_time

if TYPE_CHECKING:
    from ..debug.trace import Tracer

logger = logging.getLogger(__name__)

TEMPO_MARKER = "BPM"
BASE_TEMPO_KEY = "00"
EMPTY_CELL = "00"
DEFAULT_BANNER = "cover/none_cover.png"


@dataclass
class ComputedNote:
    """A non-empty note cell resolved to absolute time."""
    tick: float             # measure + fraction within measure
    time: float             # seconds, microsecond quantized
    value: str              # 2-char value code
    channel: str            # 2-char channel code
    channel_type: ChannelType = ChannelType.NONE
    consumed: bool = False  # set when taken as the release of a hold

    @property
    def measure(self) -> int:
        return int(self.tick)

    @property
    def sort_score(self) -> int:
        return round(self.time * 1_000_000)


@dataclass
class BmsChart:
    """Parsed BMS chart: metadata, sorted notes and timing percents."""
    name: str = ""
    md5: str = ""
    info: dict[str, str | bool] = field(default_factory=dict)
    notes: list[ComputedNote] = field(default_factory=list)
    notes_percent: list[TimingOverride] = field(default_factory=list)
    tempo_segments: list[TempoSegment] = field(default_factory=list)

    @property
    def total_notes(self) -> int:
        return len(self.notes)

    @property
    def base_bpm(self) -> float:
        if self.tempo_segments:
            return self.tempo_segments[0].bpm
        return 0.0

    @property
    def duration_seconds(self) -> float:
        if self.notes:
            return max(n.time for n in self.notes)
        return 0.0

    @property
    def total_measures(self) -> int:
        if self.notes:
            return max(n.measure for n in self.notes) + 1
        return 0

    def get_notes_in_range(
        self, start_time: float, end_time: float
    ) -> list[ComputedNote]:
        """Get all notes within a time window (seconds)."""
        return [n for n in self.notes if start_time <= n.time <= end_time]

    def get_notes_at_measure(self, measure: int) -> list[ComputedNote]:
        """Get all notes in a specific measure."""
        return [n for n in self.notes if n.measure == measure]

    def get_info(self, key: str, default: str | None = None) -> str | None:
        value = self.info.get(key)
        if value is None:
            return default
        return str(value)


def sort_notes(
    notes: list[ComputedNote], auto_channel: str = AUTO_CHANNEL
) -> list[ComputedNote]:
    """
    Order notes by time, auto channel first on ties.

    Times are compared as whole microseconds so values that differ only
    by float noise below 1 µs compare equal. The sort is stable.
    """
    return sorted(
        notes,
        key=lambda n: (n.sort_score, 0 if n.channel == auto_channel else 1),
    )


@dataclass
class _DecodeState:
    """Mutable state of a single forward scan."""
    timeline: TempoTimeline = field(default_factory=TempoTimeline)
    bpm_table: dict[str, float] = field(default_factory=dict)
    overrides: dict[int, TimingOverride] = field(default_factory=dict)
    notes: list[ComputedNote] = field(default_factory=list)


class BmsParser:
    """
    Parser for album BMS charts.

    Usage:
        parser = BmsParser()
        chart = parser.parse_file("path/to/map_hard.bms")
        for note in chart.notes:
            print(note.time, note.channel, note.value)
    """

    def __init__(
        self,
        channels: dict[str, ChannelType] | None = None,
        auto_channel: str = AUTO_CHANNEL,
        encoding: str = "utf-8-sig",
        tracer: Tracer | None = None,
    ):
        self.channels = dict(CHANNELS if channels is None else channels)
        self.auto_channel = auto_channel
        self.encoding = encoding
        self.tracer = tracer

    # ------------------------------
    # ENTRY POINTS
    # ------------------------------
    def load(self, stream: bytes | BinaryIO, name: str) -> BmsChart:
        """
        Parse a chart from raw bytes or a binary stream.

        Args:
            stream: Chart file content.
            name: Display name stored as the NAME header.

        Returns:
            Fully resolved chart, notes sorted.

        Raises:
            ChartParseError: on any malformed directive.
        """
        logger.info("Loading bms %s...", name)
        data = stream if isinstance(stream, bytes) else stream.read()
        content = data.decode(self.encoding, errors="replace")

        chart = self._parse_content(content)
        chart.name = name
        chart.md5 = hashlib.md5(data).hexdigest()

        chart.info["NAME"] = name
        chart.info["NEW"] = True
        banner = chart.info.get("BANNER")
        chart.info["BANNER"] = f"cover/{banner}" if banner else DEFAULT_BANNER

        logger.info(
            "Loaded bms %s: %d notes, %d tempo segments, %d timing overrides",
            name, chart.total_notes, len(chart.tempo_segments),
            len(chart.notes_percent),
        )
        return chart

    def parse_file(self, path: str | Path) -> BmsChart:
        """Parse a BMS file, named after its stem."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"BMS file not found: {path}")
        with path.open("rb") as f:
            return self.load(f, path.stem)

    def parse_string(self, content: str, name: str = "") -> BmsChart:
        """Parse BMS content from a string."""
        encoding = "utf-8" if self.encoding.lower() == "utf-8-sig" else self.encoding
        return self.load(io.BytesIO(content.encode(encoding)), name)

    # ------------------------------
    # LINE SCANNER
    # ------------------------------
    def _parse_content(self, content: str) -> BmsChart:
        chart = BmsChart()
        state = _DecodeState()

        for line_no, raw in enumerate(content.splitlines(), start=1):
            line = raw.strip()
            if not line or not line.startswith("#"):
                continue

            directive = line[1:]
            if " " in directive:
                self._parse_header(chart, state, directive, line_no)
            elif ":" in directive:
                self._parse_channel(state, directive, line_no)
            else:
                raise ChartParseError(
                    f"directive without value: {line!r}", line_no
                )

        if not state.timeline.has_origin:
            raise ChartParseError("chart declares no #BPM base tempo")

        chart.notes = sort_notes(state.notes, self.auto_channel)
        chart.notes_percent = list(state.overrides.values())
        chart.tempo_segments = state.timeline.segments
        return chart

    # ------------------------------
    # HEADER PARSER
    # ------------------------------
    def _parse_header(
        self, chart: BmsChart, state: _DecodeState, directive: str, line_no: int
    ) -> None:
        key, value = directive.split(" ", 1)
        value = value.strip()
        chart.info[key] = value
        self._trace_header(key, value)

        if not key.upper().startswith(TEMPO_MARKER):
            return

        suffix = key[len(TEMPO_MARKER):].upper() or BASE_TEMPO_KEY
        bpm = _parse_float(value, f"#{key}", line_no)
        if suffix in state.bpm_table:
            raise DuplicateTempoKey(f"#BPM{suffix} declared twice", line_no)
        state.bpm_table[suffix] = bpm

        if suffix != BASE_TEMPO_KEY:
            return
        self._insert_tempo(state, 0.0, bpm, line_no)

    # ------------------------------
    # CHANNEL DECODER
    # ------------------------------
    def _parse_channel(
        self, state: _DecodeState, directive: str, line_no: int
    ) -> None:
        key, value = directive.split(":", 1)
        value = value.strip()
        if len(key) < 5:
            raise ChartParseError(f"bad channel key {key!r}", line_no)
        try:
            beat = int(key[:3])
        except ValueError:
            raise ChartParseError(
                f"bad measure index {key[:3]!r}", line_no
            ) from None
        channel = key[3:5].upper()
        channel_type = resolve_channel(channel, self.channels)

        if channel_type & ChannelType.SP_TIMESIG:
            if beat in state.overrides:
                raise DuplicateTimingOverride(
                    f"measure {beat:03d} has two timing percents", line_no
                )
            override = TimingOverride(
                beat=beat, percent=_parse_float(value, "timing percent", line_no)
            )
            state.overrides[beat] = override
            if self.tracer:
                self.tracer.trace_override(beat, override.percent)
            return

        if len(value) % 2:
            raise ChartParseError(
                f"odd-length cell string on channel {channel}", line_no
            )

        cell_count = len(value) // 2
        for i in range(cell_count):
            cell = value[i * 2 : i * 2 + 2].upper()
            if cell == EMPTY_CELL:
                continue

            tick = beat + i / cell_count

            if channel_type & TEMPO_CHANNELS:
                bpm = self._resolve_tempo_cell(state, cell, channel_type, line_no)
                self._insert_tempo(state, tick, bpm, line_no)
                continue

            time = tick_to_time(tick, state.timeline, state.overrides)
            note = ComputedNote(
                tick=tick,
                time=time,
                value=cell,
                channel=channel,
                channel_type=channel_type,
            )
            state.notes.append(note)
            if self.tracer:
                self.tracer.trace_note(tick, time, cell, channel)

    def _resolve_tempo_cell(
        self,
        state: _DecodeState,
        cell: str,
        channel_type: ChannelType,
        line_no: int,
    ) -> float:
        if cell in state.bpm_table:
            return state.bpm_table[cell]
        if channel_type & ChannelType.SP_BPM_LOOKUP:
            raise UnknownTempoKey(f"#BPM{cell} is not declared", line_no)
        try:
            return float(int(cell, 16))
        except ValueError:
            raise ChartParseError(
                f"tempo cell {cell!r} is not hexadecimal", line_no
            ) from None

    def _insert_tempo(
        self, state: _DecodeState, tick: float, bpm: float, line_no: int
    ) -> None:
        try:
            segment = TempoSegment.from_bpm(tick, bpm)
        except ValueError as e:
            raise ChartParseError(str(e), line_no) from e
        if state.timeline.insert(segment):
            logger.debug("Tempo %.3f BPM at tick %.4f", bpm, tick)
            if self.tracer:
                self.tracer.trace_tempo(tick, bpm, segment.seconds_per_unit)

    def _trace_header(self, key: str, value: str) -> None:
        if self.tracer:
            self.tracer.trace_header(key, value)


def _parse_float(value: str, what: str, line_no: int) -> float:
    try:
        return float(value)
    except ValueError:
        raise ChartParseError(f"{what}: {value!r} is not a number", line_no) from None
