"""
Static channel and value tables for album BMS charts.

Channel codes (two characters after the measure index):
  02 → timing percent of the measure (decimal value, not cells)
  03 → tempo change, cell is the BPM in hex (or a #BPMxx key)
  08 → tempo change, cell is a #BPMxx key
  13 → air lane          14 → ground lane
  15 → event lane (auto/ghost; sorts first at equal time)
  16 → event lane
  53 → air tap-hold      54 → ground tap-hold
  D3 → air, blood        D4 → ground, blood

Value codes are base-36 pairs identifying what sits in a cell (a monster,
a hold, a speed marker...). Unknown codes resolve to BmsId.NONE.
"""

from __future__ import annotations

from enum import Enum, IntFlag


class ChannelType(IntFlag):
    """Role flags of a channel column."""
    NONE = 0
    GROUND = 1
    AIR = 2
    EVENT = 4
    SP_BPM_DIRECT = 8
    SP_BPM_LOOKUP = 16
    SP_TIMESIG = 32
    SP_TAP_HOLDS = 64
    SP_BLOOD = 128


TEMPO_CHANNELS = ChannelType.SP_BPM_DIRECT | ChannelType.SP_BPM_LOOKUP

# Channel code → type
CHANNELS: dict[str, ChannelType] = {
    "02": ChannelType.SP_TIMESIG,
    "03": ChannelType.SP_BPM_DIRECT,
    "08": ChannelType.SP_BPM_LOOKUP,
    "13": ChannelType.AIR,
    "14": ChannelType.GROUND,
    "15": ChannelType.EVENT,
    "16": ChannelType.EVENT,
    "53": ChannelType.AIR | ChannelType.SP_TAP_HOLDS,
    "54": ChannelType.GROUND | ChannelType.SP_TAP_HOLDS,
    "D3": ChannelType.AIR | ChannelType.SP_BLOOD,
    "D4": ChannelType.GROUND | ChannelType.SP_BLOOD,
}

# Notes on this channel win ties against every other channel
AUTO_CHANNEL = "15"


class BmsId(Enum):
    """Identity class of a cell value code."""
    NONE = ""
    SMALL = "01"
    SMALL_UP = "02"
    SMALL_DOWN = "03"
    MEDIUM1 = "04"
    MEDIUM1_UP = "05"
    MEDIUM1_DOWN = "06"
    MEDIUM2 = "07"
    MEDIUM2_UP = "08"
    MEDIUM2_DOWN = "09"
    LARGE1 = "0A"
    LARGE2 = "0B"
    RAIDER = "0C"
    HAMMER = "0D"
    GEMINI = "0E"
    HOLD = "0F"
    MASHER = "0G"
    GEAR = "0H"
    HP = "0I"
    MUSIC = "0J"
    SPEED1_BOTH = "0O"
    SPEED2_BOTH = "0P"
    SPEED3_BOTH = "0Q"
    SPEED1_LOW = "0R"
    SPEED1_HIGH = "0S"
    SPEED2_LOW = "0T"
    SPEED2_HIGH = "0U"
    SPEED3_LOW = "0V"
    SPEED3_HIGH = "0W"


BMS_IDS: dict[str, BmsId] = {
    member.value: member for member in BmsId if member is not BmsId.NONE
}

# Speed marker → (ground tier, air tier); None leaves that pathway unchanged
SPEED_CHANGES: dict[BmsId, tuple[int | None, int | None]] = {
    BmsId.SPEED1_BOTH: (1, 1),
    BmsId.SPEED2_BOTH: (2, 2),
    BmsId.SPEED3_BOTH: (3, 3),
    BmsId.SPEED1_LOW: (1, None),
    BmsId.SPEED1_HIGH: (None, 1),
    BmsId.SPEED2_LOW: (2, None),
    BmsId.SPEED2_HIGH: (None, 2),
    BmsId.SPEED3_LOW: (3, None),
    BmsId.SPEED3_HIGH: (None, 3),
}


def resolve_channel(
    code: str,
    table: dict[str, ChannelType] | None = None,
) -> ChannelType:
    """Look up a channel code, ChannelType.NONE when unknown."""
    table = CHANNELS if table is None else table
    return table.get(code.upper(), ChannelType.NONE)


def resolve_value(code: str) -> BmsId:
    """Look up a cell value code, BmsId.NONE when unknown."""
    return BMS_IDS.get(code.upper(), BmsId.NONE)


def parse_channel_flags(names: list[str]) -> ChannelType:
    """
    Build a ChannelType from flag names, e.g. ["ground", "sp_blood"].

    Raises:
        ValueError: if a name is not a ChannelType member.
    """
    flags = ChannelType.NONE
    for name in names:
        try:
            flags |= ChannelType[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown channel flag: {name!r}") from None
    return flags
