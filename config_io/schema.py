"""Map format constants, enums and Pydantic models for validation."""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, Field


# ── Format constants ───────────────────────────────────────────────────────

NUM_LAYERS = 4
MAX_MAP_SIZE = 1024

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1


# ── Enums ──────────────────────────────────────────────────────────────────

class CellFlag(enum.IntFlag):
    NONE = 0x00
    BLOCKED = 0x01


class DecodePhase(str, enum.Enum):
    HEADER = "HEADER"
    TEXTURE_DICT = "TEXTURE_DICT"
    CELL_RECORDS = "CELL_RECORDS"
    TERRAIN_DICT = "TERRAIN_DICT"
    TERRAIN_RECORDS = "TERRAIN_RECORDS"
    OPTIONAL_ZONES = "OPTIONAL_ZONES"
    OPTIONAL_AREAS = "OPTIONAL_AREAS"
    DONE = "DONE"
    FAILED = "FAILED"


class LoadFailure(str, enum.Enum):
    NONE = "NONE"
    IO_ERROR = "IO_ERROR"
    FORMAT_ERROR = "FORMAT_ERROR"


class RecordAnomaly(str, enum.Enum):
    BAD_CELL_ID = "BAD_CELL_ID"
    BAD_TEXTURE_INDEX = "BAD_TEXTURE_INDEX"
    BAD_TERRAIN_INDEX = "BAD_TERRAIN_INDEX"
    TRUNCATED = "TRUNCATED"


# ── Decoded associations ───────────────────────────────────────────────────

class TerrainAssociation(BaseModel):
    terrain_id: int
    texture_name: str


class ZoneAssociation(BaseModel):
    terrain_id: int = Field(ge=INT32_MIN, le=INT32_MAX)
    zone_id: int = Field(ge=INT32_MIN, le=INT32_MAX)


class AreaAssociation(BaseModel):
    terrain_id: int = Field(ge=INT32_MIN, le=INT32_MAX)
    area_id: int = Field(ge=INT32_MIN, le=INT32_MAX)


# ── Map document (what the encoder writes, what `dump` produces) ───────────

class LayerRecord(BaseModel):
    texture: int = Field(ge=INT32_MIN, le=INT32_MAX)
    scale: float = 1.0


class CellRecord(BaseModel):
    cell_id: int = Field(ge=INT32_MIN, le=INT32_MAX)
    flags: int = Field(default=0, ge=0, le=255)
    layers: list[Optional[LayerRecord]] = Field(default_factory=list, max_length=NUM_LAYERS)


class TerrainRecord(BaseModel):
    terrain_id: int = Field(ge=INT32_MIN, le=INT32_MAX)
    texture: int = Field(ge=INT32_MIN, le=INT32_MAX)


class MapDocument(BaseModel):
    """Structured form of a map file, one field per format section."""
    map_size: int = Field(ge=INT32_MIN, le=INT32_MAX)
    textures: list[str] = Field(default_factory=list)
    cells: list[CellRecord] = Field(default_factory=list)
    terrain_textures: list[str] = Field(default_factory=list)
    terrains: list[TerrainRecord] = Field(default_factory=list)
    # Trailing sections: None means "not written at all"
    zones: Optional[list[ZoneAssociation]] = None
    areas: Optional[list[AreaAssociation]] = None
