"""Binary map format: phase-by-phase decoder, load notifications and encoder.

File layout (all integers int32, little-endian):

    mapSize
    textureCount    { len, utf8 bytes }                       texture dictionary
    cellCount       { cellId, flags:uint8,
                      NUM_LAYERS x { hasTexture:bool [, texIndex, scale:float32] } }
    terrainTexCount { len, utf8 bytes }                       terrain dictionary
    terrainCount    { terrainId, texIndex }
    -- trailing sections, each present only if bytes remain --
    zoneCount       { terrainId, zoneId }
    areaCount       { terrainId, areaId }

Only a bad header fails a load. Every later problem (bad cell id, bad
dictionary index, truncated section) drops the affected association and
is counted in the DecodeReport; records are always consumed in full so
one bad record never shifts the ones after it.

The trailing sections are detected by "any bytes left", so a future
writer cannot add a new optional section ahead of them without breaking
older readers.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional, Sequence

from config_io.schema import (
    MAX_MAP_SIZE,
    NUM_LAYERS,
    DecodePhase,
    LoadFailure,
    MapDocument,
    RecordAnomaly,
)
from data.buffer import SerializationBuffer
from sim.world import TextureRef

logger = logging.getLogger(__name__)


class MapLoadError(Exception):
    """Base class for conditions that make a whole load fail."""


class MapFormatError(MapLoadError):
    """The header declares a map size the format does not allow."""


# ── Notification interface ─────────────────────────────────────────────────

class MapLoadListener(ABC):
    """Receives decoded data while a map is loading, in file order."""

    def started_loading(self) -> None:
        pass

    @abstractmethod
    def on_resize(self, width: int, height: int) -> None:
        ...

    @abstractmethod
    def on_cell_data_loaded(
        self,
        cell_id: int,
        flags: int,
        layer_textures: Sequence[Optional[TextureRef]],
        layer_scales: Sequence[float],
    ) -> None:
        ...

    def on_finished_loading_cells(self) -> None:
        pass

    def on_terrain_texture_loaded(self, terrain_id: int, name: str) -> None:
        pass

    def on_terrain_zone_loaded(self, terrain_id: int, zone_id: int) -> None:
        pass

    def on_terrain_area_loaded(self, terrain_id: int, area_id: int) -> None:
        pass

    def finished_loading(self) -> None:
        pass


# ── Decode report ──────────────────────────────────────────────────────────

@dataclass
class DecodeReport:
    ok: bool = False
    phase: DecodePhase = DecodePhase.HEADER
    failure: LoadFailure = LoadFailure.NONE
    error: str = ""
    map_size: int = 0
    textures: int = 0
    cells_loaded: int = 0
    terrain_textures: int = 0
    terrains_loaded: int = 0
    zones_loaded: int = 0
    areas_loaded: int = 0
    anomalies: Counter = field(default_factory=Counter)

    @property
    def dropped(self) -> int:
        return sum(self.anomalies.values())

    def note(self, anomaly: RecordAnomaly, detail: str) -> None:
        self.anomalies[anomaly] += 1
        logger.debug(f"{self.phase.value}: dropped record ({anomaly.value}): {detail}")

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "phase": self.phase.value,
            "failure": self.failure.value,
            "error": self.error,
            "map_size": self.map_size,
            "textures": self.textures,
            "cells_loaded": self.cells_loaded,
            "terrain_textures": self.terrain_textures,
            "terrains_loaded": self.terrains_loaded,
            "zones_loaded": self.zones_loaded,
            "areas_loaded": self.areas_loaded,
            "anomalies": {a.value: n for a, n in self.anomalies.items()},
            "dropped": self.dropped,
        }


# ── Decoder ────────────────────────────────────────────────────────────────

class MapFormatDecoder:
    """Runs the format phases over a buffer, notifying a listener as it goes.

    Holds no state between calls; each `decode` builds its own dictionaries
    and report.
    """

    def __init__(self, max_map_size: int = MAX_MAP_SIZE):
        self.max_map_size = min(max_map_size, MAX_MAP_SIZE)

    def decode(self, buffer: SerializationBuffer, listener: MapLoadListener) -> DecodeReport:
        report = DecodeReport()
        listener.started_loading()

        try:
            map_size = self._read_header(buffer)
        except MapFormatError as e:
            report.phase = DecodePhase.FAILED
            report.failure = LoadFailure.FORMAT_ERROR
            report.error = str(e)
            logger.warning(f"Map rejected: {e}")
            return report

        report.map_size = map_size
        listener.on_resize(map_size, map_size)

        report.phase = DecodePhase.TEXTURE_DICT
        textures = [TextureRef(i, name) for i, name in enumerate(self._read_dictionary(buffer, report))]
        report.textures = len(textures)

        report.phase = DecodePhase.CELL_RECORDS
        self._read_cells(buffer, map_size * map_size, textures, listener, report)
        listener.on_finished_loading_cells()

        report.phase = DecodePhase.TERRAIN_DICT
        terrain_dict = self._read_dictionary(buffer, report)
        report.terrain_textures = len(terrain_dict)

        report.phase = DecodePhase.TERRAIN_RECORDS
        self._read_terrains(buffer, terrain_dict, listener, report)

        report.phase = DecodePhase.OPTIONAL_ZONES
        if not buffer.at_end():
            report.zones_loaded = self._read_pairs(buffer, listener.on_terrain_zone_loaded, report)

        report.phase = DecodePhase.OPTIONAL_AREAS
        if not buffer.at_end():
            report.areas_loaded = self._read_pairs(buffer, listener.on_terrain_area_loaded, report)

        report.phase = DecodePhase.DONE
        report.ok = True
        listener.finished_loading()

        if buffer.remaining():
            logger.warning(f"{buffer.remaining()} trailing bytes after the last section were ignored")
        logger.info(
            f"Map decoded: {map_size}x{map_size}, {report.cells_loaded} cells, "
            f"{report.terrains_loaded} terrains, {report.dropped} dropped records"
        )
        return report

    # ── Phases ─────────────────────────────────────────────────────────

    def _read_header(self, buffer: SerializationBuffer) -> int:
        map_size = buffer.get_int32()
        if map_size <= 0 or map_size > self.max_map_size:
            raise MapFormatError(
                f"map size {map_size} outside 1..{self.max_map_size}"
            )
        return map_size

    def _read_count(self, buffer: SerializationBuffer) -> int:
        return max(0, buffer.get_int32())

    def _truncated(self, buffer: SerializationBuffer, index: int, count: int, report: DecodeReport) -> bool:
        if not buffer.at_end():
            return False
        report.note(RecordAnomaly.TRUNCATED, f"buffer exhausted after {index} of {count} records")
        logger.warning(f"{report.phase.value}: file ends after {index} of {count} records")
        return True

    def _read_dictionary(self, buffer: SerializationBuffer, report: DecodeReport) -> list[str]:
        count = self._read_count(buffer)
        names: list[str] = []
        for i in range(count):
            if self._truncated(buffer, i, count, report):
                break
            names.append(buffer.get_string())
        return names

    def _read_cells(
        self,
        buffer: SerializationBuffer,
        cell_count: int,
        textures: list[TextureRef],
        listener: MapLoadListener,
        report: DecodeReport,
    ) -> None:
        count = self._read_count(buffer)
        for i in range(count):
            if self._truncated(buffer, i, count, report):
                break

            cell_id = buffer.get_int32()
            flags = buffer.get_uint8()

            # Every layer field is read even for a bad cell id, to stay aligned
            layer_textures: list[Optional[TextureRef]] = [None] * NUM_LAYERS
            layer_scales = [1.0] * NUM_LAYERS
            for layer in range(NUM_LAYERS):
                if not buffer.get_bool():
                    continue
                tex_index = buffer.get_int32()
                scale = buffer.get_float32()
                if 0 <= tex_index < len(textures):
                    layer_textures[layer] = textures[tex_index]
                    layer_scales[layer] = scale
                else:
                    report.note(
                        RecordAnomaly.BAD_TEXTURE_INDEX,
                        f"cell {cell_id} layer {layer} texture {tex_index}",
                    )

            if not 0 <= cell_id < cell_count:
                report.note(RecordAnomaly.BAD_CELL_ID, f"cell id {cell_id}")
                continue

            listener.on_cell_data_loaded(cell_id, flags, layer_textures, layer_scales)
            report.cells_loaded += 1

    def _read_terrains(
        self,
        buffer: SerializationBuffer,
        terrain_dict: list[str],
        listener: MapLoadListener,
        report: DecodeReport,
    ) -> None:
        count = self._read_count(buffer)
        for i in range(count):
            if self._truncated(buffer, i, count, report):
                break
            terrain_id = buffer.get_int32()
            tex_index = buffer.get_int32()
            if 0 <= tex_index < len(terrain_dict):
                listener.on_terrain_texture_loaded(terrain_id, terrain_dict[tex_index])
                report.terrains_loaded += 1
            else:
                report.note(
                    RecordAnomaly.BAD_TERRAIN_INDEX,
                    f"terrain {terrain_id} texture {tex_index}",
                )

    def _read_pairs(self, buffer: SerializationBuffer, notify, report: DecodeReport) -> int:
        count = self._read_count(buffer)
        loaded = 0
        for i in range(count):
            if self._truncated(buffer, i, count, report):
                break
            terrain_id = buffer.get_int32()
            value = buffer.get_int32()
            notify(terrain_id, value)
            loaded += 1
        return loaded


# ── Encoder ────────────────────────────────────────────────────────────────

def encode_map(document: MapDocument) -> bytes:
    """Serialize a MapDocument in the layout the decoder reads."""
    buf = SerializationBuffer()
    buf.put_int32(document.map_size)

    buf.put_int32(len(document.textures))
    for name in document.textures:
        buf.put_string(name)

    buf.put_int32(len(document.cells))
    for cell in document.cells:
        buf.put_int32(cell.cell_id)
        buf.put_uint8(cell.flags)
        layers = list(cell.layers) + [None] * (NUM_LAYERS - len(cell.layers))
        for layer in layers:
            buf.put_bool(layer is not None)
            if layer is not None:
                buf.put_int32(layer.texture)
                buf.put_float32(layer.scale)

    buf.put_int32(len(document.terrain_textures))
    for name in document.terrain_textures:
        buf.put_string(name)

    buf.put_int32(len(document.terrains))
    for terrain in document.terrains:
        buf.put_int32(terrain.terrain_id)
        buf.put_int32(terrain.texture)

    if document.zones is not None or document.areas is not None:
        zones = document.zones or []
        buf.put_int32(len(zones))
        for zone in zones:
            buf.put_int32(zone.terrain_id)
            buf.put_int32(zone.zone_id)

    if document.areas is not None:
        buf.put_int32(len(document.areas))
        for area in document.areas:
            buf.put_int32(area.terrain_id)
            buf.put_int32(area.area_id)

    return buf.data
