import logging
from decimal import Decimal

from bmsloader.stage.music_data import MusicDataBuilder, round_tick
from bmsloader.stage.note_config import NoteConfig, NoteConfigTable, NoteType
from bmsloader.stage.transmuter import GameplayNote


def _note(id_: int, time: str, uid: str = "01-0-0-X", length: str = "0") -> GameplayNote:
    return GameplayNote(
        id=id_, time=Decimal(time), note_uid=uid, length=Decimal(length)
    )


def test_round_tick_half_even() -> None:
    assert round_tick(Decimal("1.23456")) == Decimal("1.235")
    assert round_tick(Decimal("1.0005")) == Decimal("1.000")
    assert round_tick(Decimal("1.0015")) == Decimal("1.002")


def test_taps_map_one_to_one(note_table) -> None:
    records = MusicDataBuilder(note_table).build(
        [_note(1, "0.123456"), _note(2, "2.5")]
    )
    assert [r.obj_id for r in records] == [1, 2]
    assert [r.tick for r in records] == [Decimal("0.123"), Decimal("2.500")]
    assert records[0].note_config is not None
    assert not any(r.is_long_press_start or r.is_hold_tick for r in records)


def test_negative_times_are_skipped(note_table) -> None:
    records = MusicDataBuilder(note_table).build([_note(1, "-0.5"), _note(2, "1")])
    assert [r.config.id for r in records] == [2]
    assert records[0].obj_id == 1


def test_hold_gets_ticks_and_release(note_table) -> None:
    hold = _note(1, "2.000000", uid="0F-0-0-X", length="0.35")
    records = MusicDataBuilder(note_table).build([hold, _note(2, "3")])

    start, *ticks, release, after = records
    assert start.is_long_press_start
    assert [t.tick for t in ticks] == [Decimal("2.100"), Decimal("2.200"), Decimal("2.300")]
    assert all(t.is_long_pressing and not t.is_long_press_end for t in ticks)
    assert release.is_long_press_end and not release.is_long_pressing
    assert release.tick == Decimal("2.350")
    # 2.35 - great 0.08 - perfect 0.05 = 2.22 s
    assert {t.end_index for t in ticks + [release]} == {2220}
    assert {t.long_press_p_tick for t in ticks + [release]} == {Decimal("2.000000")}
    assert [r.obj_id for r in records] == [1, 2, 3, 4, 5, 6]
    assert after.config.id == 2


def test_short_hold_only_gets_release(note_table) -> None:
    hold = _note(1, "1", uid="0F-0-0-X", length="0.001")
    records = MusicDataBuilder(note_table).build([hold])
    assert len(records) == 2
    assert records[1].is_long_press_end
    assert records[1].tick == Decimal("1.001")


def test_unpaired_hold_and_masher_have_no_ticks(note_table) -> None:
    records = MusicDataBuilder(note_table).build([
        _note(1, "1", uid="0F-0-0-X"),
        _note(2, "2", uid="0G-0-0-X", length="1.5"),
    ])
    assert len(records) == 2
    assert not any(r.is_long_press_start for r in records)


def test_custom_tick_interval(note_table) -> None:
    hold = _note(1, "0", uid="0F-0-0-X", length="1")
    records = MusicDataBuilder(note_table, hold_tick_interval=Decimal("0.25")).build([hold])
    assert [r.tick for r in records[1:]] == [
        Decimal("0.250"), Decimal("0.500"), Decimal("0.750"), Decimal("1.000"),
    ]


def test_capacity_counts_hold_ticks(note_table, caplog) -> None:
    caplog.set_level(logging.WARNING, logger="bmsloader")
    hold = _note(2, "1", uid="0F-0-0-X", length="0.25")
    records = MusicDataBuilder(note_table, max_objects=3).build(
        [_note(1, "0"), hold, _note(3, "2")]
    )
    # The hold needs 4 ids (start, 2 ticks, release); only 2 remain
    assert [r.config.id for r in records] == [1]
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1


def test_to_dict_for_hold(note_table) -> None:
    hold = _note(1, "1", uid="0F-0-0-X", length="0.1")
    start, release = MusicDataBuilder(note_table).build([hold])
    assert start.to_dict()["long_press_start"] is True
    assert start.to_dict()["length"] == 0.1
    data = release.to_dict()
    assert data["long_press_end"] is True
    assert data["long_press_p_tick"] == 1.0
    assert data["end_index"] == 970


def test_hold_end_index_uses_note_tolerances() -> None:
    config = NoteConfig(
        uid="wide", code="0F", pathway=0, speed=0, scene="X",
        note_type=NoteType.PRESS, left_perfect_range=0.1, left_great_range=0.2,
    )
    hold = _note(1, "1", uid="wide", length="0.5")
    records = MusicDataBuilder(NoteConfigTable([config])).build([hold])
    # 1.5 - great 0.2 - perfect 0.1 = 1.2 s
    assert {r.end_index for r in records[1:]} == {1200}
    assert records[-1].note_config is config
