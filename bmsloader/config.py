"""
Configuration models and loaders for bmsloader.
Uses Pydantic for validation and TOML for file format.
"""

from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from pydantic import BaseModel, Field, field_validator

from .chart.tables import AUTO_CHANNEL, CHANNELS, ChannelType, parse_channel_flags


class ChartConfig(BaseModel):
    """Chart text decoding settings."""
    encoding: str = "utf-8-sig"
    auto_channel: str = AUTO_CHANNEL
    # Extra or replacement channel codes, e.g. {"17" = ["ground", "sp_blood"]}
    channels: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("auto_channel")
    @classmethod
    def validate_auto_channel(cls, v: str) -> str:
        if len(v) != 2:
            raise ValueError("Channel codes must be exactly 2 characters")
        return v.upper()

    @field_validator("channels")
    @classmethod
    def validate_channels(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        for code, names in v.items():
            if len(code) != 2:
                raise ValueError(f"Channel code {code!r} must be exactly 2 characters")
            parse_channel_flags(names)
        return {code.upper(): names for code, names in v.items()}

    def channel_table(self) -> dict[str, ChannelType]:
        """Built-in channel table with the configured overrides applied."""
        table = dict(CHANNELS)
        for code, names in self.channels.items():
            table[code] = parse_channel_flags(names)
        return table


class TransmuteConfig(BaseModel):
    """Gameplay note generation settings."""
    default_speed: int = 0
    default_scene: str | None = None
    tap_hold_length: Decimal = Decimal("0.001")
    max_objects: int = Field(default=32767, ge=1, le=32767)

    @field_validator("default_speed")
    @classmethod
    def validate_speed(cls, v: int) -> int:
        if not 0 <= v <= 3:
            raise ValueError("Speed tier must be between 0 and 3")
        return v


class MusicDataConfig(BaseModel):
    """Playback record settings."""
    hold_tick_interval: Decimal = Decimal("0.1")

    @field_validator("hold_tick_interval")
    @classmethod
    def validate_interval(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Hold tick interval must be positive")
        return v


class TablesConfig(BaseModel):
    """External lookup tables."""
    note_config_path: str = ""


class DebugConfig(BaseModel):
    """Debug and diagnostic settings."""
    log_level: str = "INFO"
    log_file: str = ""
    trace: bool = False
    trace_file: str = "trace.json"

    @field_validator("log_level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {valid}")
        return v.upper()


class LoaderProfile(BaseModel):
    """Complete loader configuration."""
    chart: ChartConfig = Field(default_factory=ChartConfig)
    transmute: TransmuteConfig = Field(default_factory=TransmuteConfig)
    music_data: MusicDataConfig = Field(default_factory=MusicDataConfig)
    tables: TablesConfig = Field(default_factory=TablesConfig)
    debug: DebugConfig = Field(default_factory=DebugConfig)

    @classmethod
    def from_toml(cls, path: str | Path) -> LoaderProfile:
        """Load loader profile from TOML file."""
        path = Path(path)
        with path.open("rb") as f:
            data = tomllib.load(f)
        return cls.model_validate(data)

    def to_dict(self) -> dict[str, Any]:
        """Export profile as dictionary."""
        return self.model_dump()
