"""Game map: owns the loaded cell grid and terrain associations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from config_io.config import Config
from config_io.schema import (
    AreaAssociation,
    CellRecord,
    DecodePhase,
    LayerRecord,
    LoadFailure,
    MapDocument,
    TerrainAssociation,
    TerrainRecord,
    ZoneAssociation,
)
from data.buffer import SerializationBuffer
from data.map_format import DecodeReport, MapFormatDecoder, MapLoadListener
from data.map_io import read_map_bytes
from sim.world import MapCell, MapCellStore, TextureRef

logger = logging.getLogger(__name__)


@dataclass
class _Staging:
    """Everything a load in progress has produced so far."""
    store: MapCellStore | None = None
    terrain_textures: list[TerrainAssociation] = field(default_factory=list)
    terrain_zones: list[ZoneAssociation] = field(default_factory=list)
    terrain_areas: list[AreaAssociation] = field(default_factory=list)
    finished: bool = False


class GameMap(MapLoadListener):
    """A map loaded from a binary map file.

    Decoding fills a private staging area; only a successful load publishes
    it. After a failed load the map is empty: `store` is None, `cell_at`
    returns None and nothing is walkable.
    """

    def __init__(self, config: Config | None = None):
        self.config = config or Config()
        self.path: Path | None = None
        self.store: MapCellStore | None = None
        self.terrain_textures: list[TerrainAssociation] = []
        self.terrain_zones: list[ZoneAssociation] = []
        self.terrain_areas: list[AreaAssociation] = []
        self.report: DecodeReport | None = None
        self._staging: _Staging | None = None

    # ── Loading ────────────────────────────────────────────────────────

    def load(self, path: str | Path) -> bool:
        self._unpublish()
        self.path = Path(path)
        try:
            raw = read_map_bytes(self.path)
        except (OSError, ValueError) as e:
            logger.warning(f"Cannot read map {self.path!r}: {e}")
            self.report = DecodeReport(
                phase=DecodePhase.FAILED, failure=LoadFailure.IO_ERROR, error=str(e),
            )
            return False
        return self.load_bytes(raw)

    def load_bytes(self, raw: bytes) -> bool:
        self._unpublish()
        decoder = MapFormatDecoder(max_map_size=self.config.map_format.max_map_size)
        self.report = decoder.decode(SerializationBuffer(raw), self)

        staging, self._staging = self._staging, None
        if not self.report.ok or staging is None or not staging.finished:
            return False

        self.store = staging.store
        self.terrain_textures = staging.terrain_textures
        self.terrain_zones = staging.terrain_zones
        self.terrain_areas = staging.terrain_areas
        return True

    def _unpublish(self) -> None:
        self.store = None
        self.terrain_textures = []
        self.terrain_zones = []
        self.terrain_areas = []
        self.report = None

    # ── Notifications ──────────────────────────────────────────────────

    def started_loading(self) -> None:
        self._staging = _Staging()

    def on_resize(self, width: int, height: int) -> None:
        self._staging.store = MapCellStore(width, height)

    def on_cell_data_loaded(
        self,
        cell_id: int,
        flags: int,
        layer_textures: Sequence[Optional[TextureRef]],
        layer_scales: Sequence[float],
    ) -> None:
        self._staging.store.set_cell(cell_id, flags, layer_textures, layer_scales)

    def on_terrain_texture_loaded(self, terrain_id: int, name: str) -> None:
        self._staging.terrain_textures.append(TerrainAssociation(terrain_id=terrain_id, texture_name=name))

    def on_terrain_zone_loaded(self, terrain_id: int, zone_id: int) -> None:
        self._staging.terrain_zones.append(ZoneAssociation(terrain_id=terrain_id, zone_id=zone_id))

    def on_terrain_area_loaded(self, terrain_id: int, area_id: int) -> None:
        self._staging.terrain_areas.append(AreaAssociation(terrain_id=terrain_id, area_id=area_id))

    def finished_loading(self) -> None:
        self._staging.finished = True

    # ── Queries ────────────────────────────────────────────────────────

    @property
    def loaded(self) -> bool:
        return self.store is not None

    @property
    def width(self) -> int:
        return self.store.width if self.store else 0

    @property
    def height(self) -> int:
        return self.store.height if self.store else 0

    def cell_at(self, x: int, y: int) -> MapCell | None:
        if self.store is None:
            return None
        return self.store.cell_at(x, y)

    def is_walkable(self, x: int, y: int) -> bool:
        if self.store is None:
            return False
        return self.store.is_walkable(x, y)

    def terrain_texture(self, terrain_id: int) -> str | None:
        """Last texture assigned to a terrain id, if any."""
        found = None
        for assoc in self.terrain_textures:
            if assoc.terrain_id == terrain_id:
                found = assoc.texture_name
        return found

    def terrain_zone(self, terrain_id: int) -> int | None:
        return {z.terrain_id: z.zone_id for z in self.terrain_zones}.get(terrain_id)

    def terrain_area(self, terrain_id: int) -> int | None:
        return {a.terrain_id: a.area_id for a in self.terrain_areas}.get(terrain_id)

    # ── Export ─────────────────────────────────────────────────────────

    def to_document(self) -> MapDocument:
        """Rebuild a MapDocument from the published state.

        Dictionaries are rebuilt from the names actually referenced, so
        unused or out-of-range entries from the source file are not kept.
        """
        if self.store is None:
            raise ValueError("No map loaded")

        textures: list[str] = []
        tex_index: dict[str, int] = {}
        for ref in self.store.textures():
            if ref.name not in tex_index:
                tex_index[ref.name] = len(textures)
                textures.append(ref.name)

        cells = []
        for cell_id in self.store.loaded_cell_ids():
            cell = self.store.cell(cell_id)
            layers = [
                LayerRecord(texture=tex_index[e.texture.name], scale=e.scale) if e is not None else None
                for e in cell.layers
            ]
            while layers and layers[-1] is None:
                layers.pop()
            cells.append(CellRecord(cell_id=cell_id, flags=cell.flags, layers=layers))

        terrain_names: list[str] = []
        terrain_index: dict[str, int] = {}
        terrains = []
        for assoc in self.terrain_textures:
            if assoc.texture_name not in terrain_index:
                terrain_index[assoc.texture_name] = len(terrain_names)
                terrain_names.append(assoc.texture_name)
            terrains.append(TerrainRecord(
                terrain_id=assoc.terrain_id, texture=terrain_index[assoc.texture_name],
            ))

        return MapDocument(
            map_size=self.store.width,
            textures=textures,
            cells=cells,
            terrain_textures=terrain_names,
            terrains=terrains,
            zones=list(self.terrain_zones) if self.terrain_zones or self.terrain_areas else None,
            areas=list(self.terrain_areas) if self.terrain_areas else None,
        )
