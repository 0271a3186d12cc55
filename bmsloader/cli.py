"""
Command-line interface for bmsloader.

Commands:
- summary: Print chart metadata, tempo and note counts
- notes: Print or export the transmuted note stream
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections import Counter
from pathlib import Path

from .chart.errors import ChartParseError


def get_arg_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="bmsloader",
        description="Load album BMS charts into timed gameplay notes",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--config",
        type=str,
        default="configs/loader.toml",
        help="Path to loader profile config",
    )
    parser.add_argument(
        "--save-trace",
        type=str,
        help="Save load trace to file (JSON), overrides debug.trace_file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Summary command
    summary_parser = subparsers.add_parser(
        "summary",
        help="Print chart metadata, tempo and note counts",
    )
    summary_parser.add_argument("chart", type=str, help="Path to .bms file")

    # Notes command
    notes_parser = subparsers.add_parser(
        "notes",
        help="Print or export the transmuted note stream",
    )
    notes_parser.add_argument("chart", type=str, help="Path to .bms file")
    notes_parser.add_argument(
        "--json", "-o",
        type=str,
        dest="json_out",
        help="Write notes to a JSON file instead of printing",
    )
    notes_parser.add_argument(
        "--music-data",
        action="store_true",
        help="Output playback records (with hold ticks) instead of notes",
    )
    notes_parser.add_argument(
        "--limit", "-n",
        type=int,
        default=20,
        help="Number of notes to print (default: 20)",
    )

    return parser


def _build_loader(args: argparse.Namespace):
    from .config import LoaderProfile
    from .debug.trace import Tracer, setup_logging
    from .loader import ChartLoader

    config_path = Path(args.config)
    profile = LoaderProfile.from_toml(config_path) if config_path.exists() else LoaderProfile()

    level = logging.DEBUG if args.verbose else getattr(logging, profile.debug.log_level)
    setup_logging(level, profile.debug.log_file or None)

    tracer = Tracer() if (args.save_trace or profile.debug.trace) else None
    return ChartLoader(profile, tracer=tracer), tracer


def _save_trace(args: argparse.Namespace, loader, tracer) -> None:
    target = args.save_trace or loader.profile.debug.trace_file
    if tracer is None or not target:
        return
    trace_path = Path(target)
    tracer.save(trace_path)
    print(f"Trace saved to {trace_path}")


def cmd_summary(args: argparse.Namespace) -> int:
    """Run summary command."""
    loader, tracer = _build_loader(args)
    stage = loader.load_file(args.chart)
    chart = stage.chart

    print("\n=== Chart Summary ===")
    print(f"Name:     {chart.name}")
    print(f"Title:    {chart.get_info('TITLE', '')}")
    print(f"Artist:   {chart.get_info('ARTIST', '')}")
    print(f"Scene:    {chart.get_info('GENRE', '')}")
    print(f"BPM:      {chart.base_bpm:g}")
    print(f"Cells:    {chart.total_notes}")
    print(f"Notes:    {len(stage.notes)}")
    print(f"Records:  {len(stage.music_data)}")
    print(f"Measures: {chart.total_measures}")
    print(f"Duration: {chart.duration_seconds:.3f}s")
    print(f"MD5:      {chart.md5}")

    if len(chart.tempo_segments) > 1:
        print("\nTempo changes:")
        for segment in chart.tempo_segments[:10]:
            print(f"  [{segment.tick:8.3f}] BPM={segment.bpm:.2f}")

    if chart.notes_percent:
        print("\nTiming percents:")
        for override in chart.notes_percent:
            print(f"  [{override.beat:03d}] {override.percent:g}")

    holds = sum(1 for n in stage.notes if n.length > 0)
    pathways = Counter("air" if n.pathway else "ground" for n in stage.notes)
    print(f"\nHolds: {holds}")
    for name, count in pathways.most_common():
        print(f"  {name:6s}: {count}")

    _save_trace(args, loader, tracer)
    return 0


def cmd_notes(args: argparse.Namespace) -> int:
    """Run notes command."""
    loader, tracer = _build_loader(args)
    stage = loader.load_file(args.chart)

    if args.music_data:
        rows = [record.to_dict() for record in stage.music_data]
    else:
        rows = [note.to_dict() for note in stage.notes]

    if args.json_out:
        out_path = Path(args.json_out)
        with out_path.open("w") as f:
            json.dump(
                {"name": stage.chart.name, "md5": stage.md5, "notes": rows},
                f,
                indent=2,
            )
        print(f"Wrote {len(rows)} entries to {out_path}")
    else:
        for row in rows[: args.limit]:
            print("  " + "  ".join(f"{k}={v}" for k, v in row.items()))
        if len(rows) > args.limit:
            print(f"  ... {len(rows) - args.limit} more")

    _save_trace(args, loader, tracer)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = get_arg_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "summary": cmd_summary,
        "notes": cmd_notes,
    }

    cmd_func = commands.get(args.command)
    if cmd_func is None:
        print(f"Unknown command: {args.command}")
        return 1

    try:
        return cmd_func(args)
    except FileNotFoundError as e:
        print(e)
        return 1
    except ChartParseError as e:
        print(f"Failed to load chart: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
