"""
Stage data: note configuration lookup, gameplay notes and playback records.
"""

from .music_data import MusicData, MusicDataBuilder
from .note_config import NoteConfig, NoteConfigTable, NoteType, get_note_table
from .transmuter import GameplayNote, Transmuter

__all__ = [
    "MusicData",
    "MusicDataBuilder",
    "NoteConfig",
    "NoteConfigTable",
    "NoteType",
    "get_note_table",
    "GameplayNote",
    "Transmuter",
]
