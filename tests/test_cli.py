import json
from pathlib import Path

import pytest

from bmsloader.cli import get_arg_parser, main

CHART = (
    "#PLAYER 1\n"
    "#GENRE scene_01\n"
    "#TITLE Demo\n"
    "#BPM 120\n"
    "#00114:0101\n"
    "#00113:0F000F00\n"
)


@pytest.fixture
def chart_path(tmp_path: Path) -> Path:
    path = tmp_path / "demo.bms"
    path.write_text(CHART)
    return path


@pytest.fixture
def base_args(tmp_path: Path) -> list[str]:
    return ["--config", str(tmp_path / "missing.toml")]


def test_parser_commands() -> None:
    args = get_arg_parser().parse_args(["notes", "x.bms", "--music-data", "-n", "5"])
    assert args.command == "notes"
    assert args.music_data is True
    assert args.limit == 5


def test_no_command_prints_help(capsys) -> None:
    assert main([]) == 0
    assert "usage" in capsys.readouterr().out


def test_summary(chart_path: Path, base_args: list[str], capsys) -> None:
    assert main(base_args + ["summary", str(chart_path)]) == 0
    out = capsys.readouterr().out
    assert "Title:    Demo" in out
    assert "BPM:      120" in out
    assert "Notes:    3" in out
    assert "Holds: 1" in out


def test_notes_json(chart_path: Path, base_args: list[str], tmp_path: Path) -> None:
    out_path = tmp_path / "notes.json"
    assert main(base_args + ["notes", str(chart_path), "--json", str(out_path)]) == 0
    data = json.loads(out_path.read_text())
    assert data["name"] == "demo"
    assert [n["id"] for n in data["notes"]] == [1, 2, 3]
    hold = [n for n in data["notes"] if n["pathway"] == 1][0]
    assert hold["length"] == pytest.approx(1.0)


def test_music_data_json(chart_path: Path, base_args: list[str], tmp_path: Path) -> None:
    out_path = tmp_path / "music.json"
    argv = ["notes", str(chart_path), "--music-data", "-o", str(out_path)]
    assert main(base_args + argv) == 0
    records = json.loads(out_path.read_text())["notes"]
    # 3 notes + 9 hold ticks + 1 release
    assert len(records) == 13
    assert sum(1 for r in records if r.get("long_press_end")) == 1


def test_notes_print_limit(chart_path: Path, base_args: list[str], capsys) -> None:
    assert main(base_args + ["notes", str(chart_path), "-n", "1"]) == 0
    out = capsys.readouterr().out
    assert "id=1" in out
    assert "... 2 more" in out


def test_save_trace(chart_path: Path, base_args: list[str], tmp_path: Path) -> None:
    trace_path = tmp_path / "trace.json"
    argv = base_args + ["--save-trace", str(trace_path), "summary", str(chart_path)]
    assert main(argv) == 0
    data = json.loads(trace_path.read_text())
    assert data["event_count"] > 0


def test_parse_error_exit_code(tmp_path: Path, base_args: list[str], capsys) -> None:
    path = tmp_path / "broken.bms"
    path.write_text("#BPM 120\n#00114:010\n")
    assert main(base_args + ["summary", str(path)]) == 2
    assert "Failed to load chart" in capsys.readouterr().out


def test_missing_chart(tmp_path: Path, base_args: list[str]) -> None:
    assert main(base_args + ["summary", str(tmp_path / "nope.bms")]) == 1


def test_profile_trace_writes_trace_file(chart_path: Path, tmp_path: Path) -> None:
    trace_path = tmp_path / "profile_trace.json"
    profile_path = tmp_path / "profile.toml"
    profile_path.write_text(f'[debug]\ntrace = true\ntrace_file = "{trace_path.as_posix()}"\n')

    assert main(["--config", str(profile_path), "summary", str(chart_path)]) == 0
    data = json.loads(trace_path.read_text())
    assert data["event_count"] > 0


def test_no_trace_by_default(chart_path: Path, base_args: list[str], tmp_path: Path) -> None:
    assert main(base_args + ["summary", str(chart_path)]) == 0
    assert sorted(p.name for p in tmp_path.iterdir()) == ["demo.bms"]
