"""
bmsloader: Load album BMS charts into timed gameplay notes.

Usage:

    from bmsloader import ChartLoader

    stage = ChartLoader().load_file("map_hard.bms")
    for note in stage.notes:
        print(note.id, note.time, note.pathway, note.length)
"""

from .loader import ChartLoader, StageInfo

__all__ = ["ChartLoader", "StageInfo"]
