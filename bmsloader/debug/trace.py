"""
Load tracing and logging setup.

Records structured events while a chart is parsed and transmuted, so a
load can be inspected or diffed after the fact.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Types of traced events."""
    HEADER = "header"
    TEMPO_SEGMENT = "tempo_segment"
    TIMING_OVERRIDE = "timing_override"
    NOTE_DECODED = "note_decoded"
    NOTE_DROPPED = "note_dropped"
    SPEED_CHANGE = "speed_change"
    HOLD_PAIRED = "hold_paired"
    CAPACITY_EXCEEDED = "capacity_exceeded"


@dataclass
class TraceEvent:
    """A single trace event."""
    timestamp: float
    event_type: EventType
    data: dict[str, Any]

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "timestamp": self.timestamp,
            "event_type": self.event_type.value,
            "data": self.data,
        }


@dataclass
class Tracer:
    """
    Event tracer for chart loads.

    Pass one to BmsParser / Transmuter to record what each stage did.
    """
    enabled: bool = True
    max_events: int = 100000

    _events: list[TraceEvent] = field(default_factory=list, init=False)
    _start_time: float = field(default=0.0, init=False)

    def start(self) -> None:
        """Start tracing."""
        self._start_time = time.perf_counter()
        self._events.clear()

    def trace(
        self,
        event_type: EventType,
        data: dict[str, Any] | None = None,
    ) -> None:
        """
        Record a trace event.

        Args:
            event_type: Type of event.
            data: Event data.
        """
        if not self.enabled:
            return

        event = TraceEvent(
            timestamp=time.perf_counter() - self._start_time,
            event_type=event_type,
            data=data or {},
        )
        self._events.append(event)

        # Limit size
        if len(self._events) > self.max_events:
            dropped = len(self._events) - self.max_events // 2
            self._events = self._events[-self.max_events // 2:]
            logger.warning(
                "Trace exceeded %d events, dropped the oldest %d",
                self.max_events, dropped,
            )

    def trace_header(self, key: str, value: str) -> None:
        self.trace(EventType.HEADER, {"key": key, "value": value})

    def trace_tempo(self, tick: float, bpm: float, seconds_per_unit: float) -> None:
        self.trace(EventType.TEMPO_SEGMENT, {
            "tick": tick,
            "bpm": bpm,
            "seconds_per_unit": seconds_per_unit,
        })

    def trace_override(self, beat: int, percent: float) -> None:
        self.trace(EventType.TIMING_OVERRIDE, {"beat": beat, "percent": percent})

    def trace_note(self, tick: float, time_s: float, value: str, channel: str) -> None:
        self.trace(EventType.NOTE_DECODED, {
            "tick": tick,
            "time": time_s,
            "value": value,
            "channel": channel,
        })

    def trace_drop(self, time_s: float, value: str, channel: str, reason: str) -> None:
        self.trace(EventType.NOTE_DROPPED, {
            "time": time_s,
            "value": value,
            "channel": channel,
            "reason": reason,
        })

    def get_events(self, event_type: EventType | None = None) -> list[TraceEvent]:
        """Get events, optionally filtered by type."""
        if event_type is None:
            return list(self._events)
        return [e for e in self._events if e.event_type == event_type]

    def save(self, path: str | Path) -> None:
        """
        Save trace to file.

        Args:
            path: Output file path (JSON format).
        """
        path = Path(path)

        data = {
            "start_time": self._start_time,
            "event_count": len(self._events),
            "events": [e.to_dict() for e in self._events],
        }

        with path.open("w") as f:
            json.dump(data, f, indent=2)

    @classmethod
    def load(cls, path: str | Path) -> Tracer:
        """
        Load trace from file.

        Args:
            path: Input file path.

        Returns:
            Tracer with loaded events.
        """
        path = Path(path)

        with path.open() as f:
            data = json.load(f)

        tracer = cls()
        tracer._start_time = data.get("start_time", 0)

        for event_data in data.get("events", []):
            event = TraceEvent(
                timestamp=event_data["timestamp"],
                event_type=EventType(event_data["event_type"]),
                data=event_data["data"],
            )
            tracer._events.append(event)

        return tracer

    def get_summary(self) -> dict[str, Any]:
        """Get summary statistics of traced events."""
        summary: dict[str, Any] = {
            "total_events": len(self._events),
            "event_counts": {},
        }

        for event_type in EventType:
            count = sum(1 for e in self._events if e.event_type == event_type)
            if count > 0:
                summary["event_counts"][event_type.value] = count

        return summary


def setup_logging(
    level: int = logging.INFO,
    log_file: str | Path | None = None,
) -> None:
    """
    Configure logging for bmsloader.

    Args:
        level: Logging level.
        log_file: Optional file to write logs to.
    """
    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger("bmsloader")
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
