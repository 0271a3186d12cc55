from __future__ import annotations

import logging
from typing import Callable

import pytest

from bmsloader.chart.bms_parser import BmsChart, BmsParser
from bmsloader.stage.note_config import NoteConfig, NoteConfigTable, NoteType

SCENE = "X"


def make_config(
    code: str,
    pathway: int = 0,
    speed: int = 0,
    scene: str = SCENE,
    note_type: NoteType = NoteType.MONSTER,
    uid: str | None = None,
) -> NoteConfig:
    return NoteConfig(
        uid=uid or f"{code}-{pathway}-{speed}-{scene}",
        code=code,
        pathway=pathway,
        speed=speed,
        scene=scene,
        note_type=note_type,
    )


@pytest.fixture
def note_table() -> NoteConfigTable:
    """Small table for scene X: monsters, a hold and a masher on speeds 0-1."""
    configs = []
    for speed in (0, 1):
        for pathway in (0, 1):
            configs.append(make_config("01", pathway, speed))
            configs.append(make_config("0F", pathway, speed, note_type=NoteType.PRESS))
        configs.append(make_config("0G", 0, speed, note_type=NoteType.MUL))
    return NoteConfigTable(configs)


@pytest.fixture
def parser() -> BmsParser:
    return BmsParser()


@pytest.fixture
def load_chart(parser: BmsParser) -> Callable[..., BmsChart]:
    def _load(text: str, name: str = "test") -> BmsChart:
        return parser.load(text.encode("utf-8"), name)
    return _load


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    pkg_logger = logging.getLogger("bmsloader")
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
        handler.close()
    pkg_logger.setLevel(logging.NOTSET)
