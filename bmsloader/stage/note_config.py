"""
Note configuration table.

Maps a cell (value code, pathway, speed tier, scene) to the note the game
spawns for it: its uid, kind and judgement windows. The built-in table is
created once on first use and never modified afterwards; alternative
tables can be loaded from TOML:

    [[note]]
    uid = "000001"
    code = "01"
    pathway = 0
    speed = 1
    scene = "scene_01"
    note_type = "monster"
"""

from __future__ import annotations

import sys
import threading
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..chart.tables import BmsId

SCENES = tuple(f"scene_{i:02d}" for i in range(1, 11))
SPEEDS = (1, 2, 3)

DEFAULT_PERFECT_RANGE = 0.05
DEFAULT_GREAT_RANGE = 0.08


class NoteType(str, Enum):
    """Kind of spawned note."""
    NONE = "none"
    MONSTER = "monster"
    PRESS = "press"   # hold
    MUL = "mul"       # masher
    BLOCK = "block"   # gear, must be jumped
    HP = "hp"
    MUSIC = "music"

    @property
    def is_hold(self) -> bool:
        return self in (NoteType.PRESS, NoteType.MUL)


class NoteConfig(BaseModel):
    """One entry of the note configuration table."""
    model_config = ConfigDict(frozen=True)

    uid: str
    code: str
    pathway: int = Field(ge=0, le=1)
    speed: int = Field(ge=0)
    scene: str
    note_type: NoteType = NoteType.MONSTER
    left_perfect_range: float = DEFAULT_PERFECT_RANGE
    left_great_range: float = DEFAULT_GREAT_RANGE
    right_perfect_range: float = DEFAULT_PERFECT_RANGE
    right_great_range: float = DEFAULT_GREAT_RANGE

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        if len(v) != 2:
            raise ValueError("Note code must be exactly 2 characters")
        return v.upper()

    @property
    def key(self) -> tuple[str, int, int, str]:
        return (self.code, self.pathway, self.speed, self.scene)


class NoteConfigFile(BaseModel):
    """TOML layout: an array of [[note]] tables."""
    note: list[NoteConfig] = Field(default_factory=list)


# Playable identities → (kind, pathways they may appear on)
DEFAULT_NOTE_KINDS: dict[BmsId, tuple[NoteType, tuple[int, ...]]] = {
    BmsId.SMALL: (NoteType.MONSTER, (0, 1)),
    BmsId.SMALL_UP: (NoteType.MONSTER, (0, 1)),
    BmsId.SMALL_DOWN: (NoteType.MONSTER, (0, 1)),
    BmsId.MEDIUM1: (NoteType.MONSTER, (0, 1)),
    BmsId.MEDIUM1_UP: (NoteType.MONSTER, (0, 1)),
    BmsId.MEDIUM1_DOWN: (NoteType.MONSTER, (0, 1)),
    BmsId.MEDIUM2: (NoteType.MONSTER, (0, 1)),
    BmsId.MEDIUM2_UP: (NoteType.MONSTER, (0, 1)),
    BmsId.MEDIUM2_DOWN: (NoteType.MONSTER, (0, 1)),
    BmsId.LARGE1: (NoteType.MONSTER, (0, 1)),
    BmsId.LARGE2: (NoteType.MONSTER, (0, 1)),
    BmsId.RAIDER: (NoteType.MONSTER, (0, 1)),
    BmsId.HAMMER: (NoteType.MONSTER, (0, 1)),
    BmsId.GEMINI: (NoteType.MONSTER, (0, 1)),
    BmsId.HOLD: (NoteType.PRESS, (0, 1)),
    BmsId.MASHER: (NoteType.MUL, (0,)),
    BmsId.GEAR: (NoteType.BLOCK, (0,)),
    BmsId.HP: (NoteType.HP, (0, 1)),
    BmsId.MUSIC: (NoteType.MUSIC, (0, 1)),
}


class NoteConfigTable:
    """Read-only lookup of NoteConfig by cell key and by uid."""

    def __init__(self, configs: Iterable[NoteConfig] = ()):
        self._by_key: dict[tuple[str, int, int, str], NoteConfig] = {}
        self._by_uid: dict[str, NoteConfig] = {}
        for config in configs:
            if config.uid in self._by_uid:
                raise ValueError(f"Duplicate note config uid: {config.uid}")
            if config.key in self._by_key:
                raise ValueError(f"Duplicate note config key: {config.key}")
            self._by_uid[config.uid] = config
            self._by_key[config.key] = config

    def __len__(self) -> int:
        return len(self._by_uid)

    def __iter__(self) -> Iterator[NoteConfig]:
        return iter(self._by_uid.values())

    def get(
        self, code: str, pathway: int, speed: int, scene: str | None
    ) -> NoteConfig | None:
        """Resolve a cell, None on a miss."""
        if scene is None:
            return None
        return self._by_key.get((code.upper(), pathway, speed, scene))

    def by_uid(self, uid: str) -> NoteConfig | None:
        return self._by_uid.get(uid)

    @classmethod
    def from_toml(cls, path: str | Path) -> NoteConfigTable:
        """Load a table from a TOML file of [[note]] entries."""
        path = Path(path)
        with path.open("rb") as f:
            data = tomllib.load(f)
        return cls(NoteConfigFile.model_validate(data).note)

    @classmethod
    def build_default(cls) -> NoteConfigTable:
        """Every playable identity on every scene, pathway and speed tier."""
        configs: list[NoteConfig] = []
        for scene in SCENES:
            for bms_id, (note_type, pathways) in DEFAULT_NOTE_KINDS.items():
                for pathway in pathways:
                    for speed in SPEEDS:
                        configs.append(NoteConfig(
                            uid=f"{len(configs) + 1:06d}",
                            code=bms_id.value,
                            pathway=pathway,
                            speed=speed,
                            scene=scene,
                            note_type=note_type,
                        ))
        return cls(configs)


_default_table: NoteConfigTable | None = None
_default_lock = threading.Lock()


def get_note_table() -> NoteConfigTable:
    """The built-in table, built on first call."""
    global _default_table
    if _default_table is None:
        with _default_lock:
            if _default_table is None:
                _default_table = NoteConfigTable.build_default()
    return _default_table
