"""Configuration loading and defaults."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from config_io.schema import MAX_MAP_SIZE


# ── Sub-configs ────────────────────────────────────────────────────────────

class MapFormatConfig(BaseModel):
    # Loader-side cap; the format itself never allows more than MAX_MAP_SIZE
    max_map_size: int = Field(default=MAX_MAP_SIZE, gt=0, le=MAX_MAP_SIZE)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "%(levelname)s: %(message)s"


class DumpConfig(BaseModel):
    """Options for the JSON dump of a loaded map."""
    indent: int = 2
    include_stats: bool = True


# ── Top-level config ───────────────────────────────────────────────────

class Config(BaseModel):
    map_format: MapFormatConfig = Field(default_factory=MapFormatConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    dump: DumpConfig = Field(default_factory=DumpConfig)


def load_config(path: str | Path | None = None, overrides: dict[str, Any] | None = None) -> Config:
    """Load config from YAML file, applying optional overrides."""
    data: dict[str, Any] = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p) as f:
                data = yaml.safe_load(f) or {}
    if overrides:
        _deep_merge(data, overrides)
    return Config(**data)


def _deep_merge(base: dict, overlay: dict) -> None:
    for k, v in overlay.items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
