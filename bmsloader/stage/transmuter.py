"""
Transmutes a parsed chart into gameplay notes.

Walks the sorted note cells once and, for each:
  1. picks the pathway from the channel (air = 1, ground/event = 0)
  2. applies speed markers to the ground/air speed tiers
  3. resolves the note config for (value, pathway, speed, scene)
  4. pairs holds with their release cell, or gives tap-holds a fixed length
  5. emits a GameplayNote with the next object id

Cells that cannot be placed (no lane, no config) are dropped silently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from ..chart.errors import ChartParseError
from ..chart.tables import SPEED_CHANGES, ChannelType, resolve_value
from ..debug.trace import EventType
from .note_config import NoteConfigTable, get_note_table

if TYPE_CHECKING:
    from ..chart.bms_parser import BmsChart, ComputedNote
    from ..debug.trace import Tracer

logger = logging.getLogger(__name__)

# Object ids are 16-bit signed in the game
MAX_OBJECT_ID = 32767
TAP_HOLD_LENGTH = Decimal("0.001")

PATHWAY_GROUND = 0
PATHWAY_AIR = 1


@dataclass
class GameplayNote:
    """A playable event handed to the stage."""
    id: int
    time: Decimal        # seconds
    note_uid: str        # NoteConfig uid
    length: Decimal = Decimal(0)
    pathway: int = PATHWAY_GROUND
    blood: bool = False

    @property
    def end_time(self) -> Decimal:
        return self.time + self.length

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "time": float(self.time),
            "note_uid": self.note_uid,
            "length": float(self.length),
            "pathway": self.pathway,
            "blood": self.blood,
        }


def to_decimal(seconds: float) -> Decimal:
    """Microsecond-exact Decimal of a float time."""
    return Decimal(f"{seconds:.6f}")


def resolve_pathway(channel_type: ChannelType) -> int | None:
    if channel_type & ChannelType.AIR:
        return PATHWAY_AIR
    if channel_type & (ChannelType.GROUND | ChannelType.EVENT):
        return PATHWAY_GROUND
    return None


class Transmuter:
    """
    Turns BmsChart notes into GameplayNote records.

    Usage:
        notes = Transmuter().transmute(chart)
    """

    def __init__(
        self,
        note_table: NoteConfigTable | None = None,
        *,
        default_speed: int = 0,
        default_scene: str | None = None,
        tap_hold_length: Decimal = TAP_HOLD_LENGTH,
        max_objects: int = MAX_OBJECT_ID,
        tracer: Tracer | None = None,
    ):
        self.note_table = note_table if note_table is not None else get_note_table()
        self.default_speed = default_speed
        self.default_scene = default_scene
        self.tap_hold_length = Decimal(tap_hold_length)
        self.max_objects = max_objects
        self.tracer = tracer

    def transmute(self, chart: BmsChart) -> list[GameplayNote]:
        """
        Build the gameplay note stream.

        Releases paired with a hold are flagged ``consumed`` on the chart
        and not emitted on their own.
        """
        speed_air = self._initial_speed(chart)
        speed_ground = speed_air
        scene = chart.get_info("GENRE", self.default_scene)

        processed: list[GameplayNote] = []
        object_id = 1
        notes = chart.notes

        for i, note in enumerate(notes):
            if note.consumed:
                continue

            pathway = resolve_pathway(note.channel_type)
            if pathway is None:
                self._drop(note, "no lane")
                continue

            bms_id = resolve_value(note.value)
            if bms_id in SPEED_CHANGES:
                ground, air = SPEED_CHANGES[bms_id]
                speed_ground = ground if ground is not None else speed_ground
                speed_air = air if air is not None else speed_air
                logger.debug(
                    "Speed change at %.6fs: ground=%d air=%d",
                    note.time, speed_ground, speed_air,
                )
                if self.tracer:
                    self.tracer.trace(EventType.SPEED_CHANGE, {
                        "time": note.time,
                        "ground": speed_ground,
                        "air": speed_air,
                    })
                continue

            speed = speed_air if pathway == PATHWAY_AIR else speed_ground
            config = self.note_table.get(note.value, pathway, speed, scene)
            if config is None:
                self._drop(note, "no note config")
                continue

            if object_id > self.max_objects:
                logger.warning(
                    "Cannot process full chart, there are too many objects. "
                    "Max objects is %d.", self.max_objects,
                )
                if self.tracer:
                    self.tracer.trace(EventType.CAPACITY_EXCEEDED, {
                        "time": note.time,
                        "remaining": len(notes) - i,
                    })
                break

            time = to_decimal(note.time)
            length = Decimal(0)
            is_hold = config.note_type.is_hold
            if is_hold:
                if note.channel_type & ChannelType.SP_TAP_HOLDS:
                    length = self.tap_hold_length
                else:
                    release = self._find_release(notes, i)
                    if release is not None:
                        length = to_decimal(release.time) - time
                        release.consumed = True
                        if self.tracer:
                            self.tracer.trace(EventType.HOLD_PAIRED, {
                                "start": note.time,
                                "end": release.time,
                                "channel": note.channel,
                            })

            processed.append(GameplayNote(
                id=object_id,
                time=time,
                note_uid=config.uid,
                length=length,
                pathway=pathway,
                blood=not is_hold and bool(note.channel_type & ChannelType.SP_BLOOD),
            ))
            object_id += 1

        logger.info("Transmuted %d of %d cells", len(processed), len(notes))
        return processed

    def _initial_speed(self, chart: BmsChart) -> int:
        player = chart.get_info("PLAYER")
        if player is None:
            return self.default_speed
        try:
            return int(player)
        except ValueError:
            raise ChartParseError(f"#PLAYER {player!r} is not an integer") from None

    @staticmethod
    def _find_release(notes: list[ComputedNote], start: int) -> ComputedNote | None:
        """First later cell with the same value on the same channel."""
        head = notes[start]
        for j in range(start + 1, len(notes)):
            candidate = notes[j]
            if candidate.consumed:
                continue
            if candidate.value == head.value and candidate.channel == head.channel:
                return candidate
        return None

    def _drop(self, note: ComputedNote, reason: str) -> None:
        logger.debug(
            "Dropped %s on channel %s at %.6fs: %s",
            note.value, note.channel, note.time, reason,
        )
        if self.tracer:
            self.tracer.trace_drop(note.time, note.value, note.channel, reason)
