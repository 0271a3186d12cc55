"""
Second stage: gameplay notes → playback records.

Each GameplayNote becomes one MusicData with a tick rounded to the
millisecond. Holds additionally get a hold tick every 0.1 s while held and
a release event at the end; these drive continuous-hold scoring.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Any

from .note_config import NoteConfig, NoteConfigTable, NoteType, get_note_table
from .transmuter import MAX_OBJECT_ID, GameplayNote

logger = logging.getLogger(__name__)

HOLD_TICK_INTERVAL = Decimal("0.1")
MILLISECOND = Decimal("0.001")


def round_tick(value: Decimal) -> Decimal:
    return value.quantize(MILLISECOND, rounding=ROUND_HALF_EVEN)


@dataclass
class MusicData:
    """One playback record."""
    obj_id: int
    tick: Decimal                     # seconds, 3 decimals
    config: GameplayNote
    note_config: NoteConfig | None = None
    is_long_press_start: bool = False
    is_long_pressing: bool = False
    is_long_press_end: bool = False
    long_press_p_tick: Decimal | None = None   # start of the parent hold
    end_index: int = 0

    @property
    def is_hold_tick(self) -> bool:
        return self.is_long_pressing or self.is_long_press_end

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "obj_id": self.obj_id,
            "tick": float(self.tick),
            "note_id": self.config.id,
            "note_uid": self.config.note_uid,
            "pathway": self.config.pathway,
        }
        if self.is_long_press_start:
            data["long_press_start"] = True
            data["length"] = float(self.config.length)
        if self.is_hold_tick:
            data["long_press_end"] = self.is_long_press_end
            data["long_press_p_tick"] = float(self.long_press_p_tick or 0)
            data["end_index"] = self.end_index
        return data


@dataclass
class MusicDataBuilder:
    """
    Builds MusicData records (with hold ticks) from gameplay notes.

    Object ids continue across hold ticks; once the id range is exhausted
    the rest of the chart is dropped with a warning.
    """
    note_table: NoteConfigTable = field(default_factory=get_note_table)
    hold_tick_interval: Decimal = HOLD_TICK_INTERVAL
    max_objects: int = MAX_OBJECT_ID

    def build(self, notes: list[GameplayNote]) -> list[MusicData]:
        records: list[MusicData] = []
        obj_id = 1

        for note in notes:
            if note.time < 0:
                continue

            note_config = self.note_table.by_uid(note.note_uid)
            start = MusicData(
                obj_id=obj_id,
                tick=round_tick(note.time),
                config=note,
                note_config=note_config,
                is_long_press_start=self._is_long_press(note, note_config),
            )
            hold_ticks = (
                self._hold_ticks(start, note_config)
                if start.is_long_press_start else []
            )

            if obj_id + len(hold_ticks) > self.max_objects:
                logger.warning(
                    "Cannot process full chart, there are too many objects. "
                    "Max objects is %d.", self.max_objects,
                )
                break

            records.append(start)
            obj_id += 1
            for hold_tick in hold_ticks:
                hold_tick.obj_id = obj_id
                records.append(hold_tick)
                obj_id += 1

        logger.info("Loaded music data: %d records", len(records))
        return records

    @staticmethod
    def _is_long_press(note: GameplayNote, note_config: NoteConfig | None) -> bool:
        return (
            note_config is not None
            and note_config.note_type is NoteType.PRESS
            and note.length > 0
        )

    def _hold_ticks(
        self, start: MusicData, note_config: NoteConfig
    ) -> list[MusicData]:
        """Hold ticks strictly inside the hold, then the release event."""
        note = start.config

        end_index = int(
            round_tick(
                start.tick
                + note.length
                - Decimal(str(note_config.left_great_range))
                - Decimal(str(note_config.left_perfect_range))
            ) / MILLISECOND
        )

        ticks: list[MusicData] = []
        offset = self.hold_tick_interval
        while offset < note.length:
            ticks.append(self._hold_tick(start, start.tick + offset, end_index))
            offset += self.hold_tick_interval

        release = self._hold_tick(start, round_tick(start.tick + note.length), end_index)
        release.is_long_pressing = False
        release.is_long_press_end = True
        ticks.append(release)
        return ticks

    @staticmethod
    def _hold_tick(start: MusicData, tick: Decimal, end_index: int) -> MusicData:
        return MusicData(
            obj_id=0,
            tick=tick,
            config=start.config,
            note_config=start.note_config,
            is_long_pressing=True,
            long_press_p_tick=start.config.time,
            end_index=end_index,
        )
