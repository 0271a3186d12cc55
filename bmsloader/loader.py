"""
End-to-end chart loading: bytes → BmsChart → gameplay notes → music data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

from .chart.bms_parser import BmsChart, BmsParser
from .config import LoaderProfile
from .debug.trace import Tracer
from .stage.music_data import MusicData, MusicDataBuilder
from .stage.note_config import NoteConfigTable, get_note_table
from .stage.transmuter import GameplayNote, Transmuter

logger = logging.getLogger(__name__)


@dataclass
class StageInfo:
    """Everything the stage layer needs from one chart."""
    chart: BmsChart
    notes: list[GameplayNote] = field(default_factory=list)
    music_data: list[MusicData] = field(default_factory=list)

    @property
    def info(self) -> dict[str, str | bool]:
        return self.chart.info

    @property
    def md5(self) -> str:
        return self.chart.md5


class ChartLoader:
    """
    Runs the whole pipeline with one profile.

    Usage:
        loader = ChartLoader(LoaderProfile.from_toml("configs/loader.toml"))
        stage = loader.load_file("album/map_hard.bms")
    """

    def __init__(
        self,
        profile: LoaderProfile | None = None,
        note_table: NoteConfigTable | None = None,
        tracer: Tracer | None = None,
    ):
        self.profile = profile or LoaderProfile()
        self.tracer = tracer
        if note_table is None:
            path = self.profile.tables.note_config_path
            note_table = NoteConfigTable.from_toml(path) if path else get_note_table()
        self.note_table = note_table

    def load(self, stream: bytes | BinaryIO, name: str) -> StageInfo:
        """Parse and transmute a chart; any parse error aborts the load."""
        if self.tracer:
            self.tracer.start()

        chart_cfg = self.profile.chart
        parser = BmsParser(
            channels=chart_cfg.channel_table(),
            auto_channel=chart_cfg.auto_channel,
            encoding=chart_cfg.encoding,
            tracer=self.tracer,
        )
        chart = parser.load(stream, name)

        transmute_cfg = self.profile.transmute
        transmuter = Transmuter(
            self.note_table,
            default_speed=transmute_cfg.default_speed,
            default_scene=transmute_cfg.default_scene,
            tap_hold_length=transmute_cfg.tap_hold_length,
            max_objects=transmute_cfg.max_objects,
            tracer=self.tracer,
        )
        notes = transmuter.transmute(chart)
        logger.info("Got note data")

        builder = MusicDataBuilder(
            note_table=self.note_table,
            hold_tick_interval=self.profile.music_data.hold_tick_interval,
            max_objects=transmute_cfg.max_objects,
        )
        music_data = builder.build(notes)

        return StageInfo(chart=chart, notes=notes, music_data=music_data)

    def load_file(self, path: str | Path) -> StageInfo:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"BMS file not found: {path}")
        with path.open("rb") as f:
            return self.load(f, path.stem)
