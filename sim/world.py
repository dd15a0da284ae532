"""Map cell storage: the flat grid of decoded cells and its coordinate helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

from config_io.schema import NUM_LAYERS, CellFlag


# ── Cell id helpers ────────────────────────────────────────────────────────

def compute_cell_id(x: int, y: int, width: int) -> int:
    if width <= 0:
        return 0
    return y * width + x


def compute_cell_pos(cell_id: int, width: int) -> tuple[int, int]:
    if width <= 0:
        return (0, 0)
    return (cell_id % width, cell_id // width)


# ── Cell data ──────────────────────────────────────────────────────────────

@dataclass(frozen=True, eq=False)
class TextureRef:
    """A texture name shared by every layer that points at the same dictionary slot.

    Identity matters: the decoder creates one instance per dictionary index
    and hands that same object to every cell, so names are never duplicated.
    """
    index: int
    name: str


@dataclass(frozen=True)
class LayerEntry:
    texture: TextureRef
    scale: float = 1.0


def _empty_layers() -> list[Optional[LayerEntry]]:
    return [None] * NUM_LAYERS


@dataclass
class MapCell:
    flags: int = 0
    layers: list[Optional[LayerEntry]] = field(default_factory=_empty_layers)

    @property
    def blocked(self) -> bool:
        return bool(self.flags & CellFlag.BLOCKED)

    def texture_name(self, layer: int) -> str | None:
        entry = self.layers[layer]
        return entry.texture.name if entry is not None else None


class MapCellStore:
    """Square grid of cells addressed by `cell_id = y * width + x`.

    Flags live in a numpy `(h, w)` grid; layer data is kept only for cells
    that have any. `cell_at` builds a MapCell view on demand.
    """

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid map dimensions {width}x{height}")
        self.width = width
        self.height = height
        self.flags = np.zeros((height, width), dtype=np.uint8)
        # Cells that received a record from the map file
        self.loaded_mask = np.zeros((height, width), dtype=bool)
        self._layers: dict[int, tuple[Optional[LayerEntry], ...]] = {}

    def __len__(self) -> int:
        return self.width * self.height

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def set_cell(
        self,
        cell_id: int,
        flags: int,
        layer_textures: Sequence[Optional[TextureRef]],
        layer_scales: Sequence[float],
    ) -> MapCell:
        layers: list[Optional[LayerEntry]] = _empty_layers()
        for i, tex in enumerate(layer_textures[:NUM_LAYERS]):
            if tex is not None:
                layers[i] = LayerEntry(tex, float(layer_scales[i]))

        x, y = compute_cell_pos(cell_id, self.width)
        self.flags[y, x] = flags
        self.loaded_mask[y, x] = True
        if any(entry is not None for entry in layers):
            self._layers[cell_id] = tuple(layers)
        else:
            self._layers.pop(cell_id, None)
        return MapCell(flags=flags, layers=layers)

    def cell(self, cell_id: int) -> MapCell:
        x, y = compute_cell_pos(cell_id, self.width)
        layers = self._layers.get(cell_id)
        return MapCell(
            flags=int(self.flags[y, x]),
            layers=list(layers) if layers is not None else _empty_layers(),
        )

    def cell_at(self, x: int, y: int) -> MapCell | None:
        if not self.in_bounds(x, y):
            return None
        return self.cell(compute_cell_id(x, y, self.width))

    def is_walkable(self, x: int, y: int) -> bool:
        if not self.in_bounds(x, y):
            return False
        return not self.flags[y, x] & int(CellFlag.BLOCKED)

    def loaded_cell_ids(self) -> list[int]:
        return [int(i) for i in np.flatnonzero(self.loaded_mask)]

    def layered_cells(self) -> list[tuple[int, tuple[Optional[LayerEntry], ...]]]:
        """(cell_id, layers) for every cell holding at least one texture, by id."""
        return sorted(self._layers.items())

    # ── Grid views for renderer / game logic ───────────────────────────

    def flags_grid(self) -> np.ndarray:
        return self.flags.copy()

    def walkable_mask(self) -> np.ndarray:
        return (self.flags & int(CellFlag.BLOCKED)) == 0

    def textures(self) -> list[TextureRef]:
        """Distinct texture references held by the grid, in dictionary order."""
        seen: dict[int, TextureRef] = {}
        for layers in self._layers.values():
            for entry in layers:
                if entry is not None:
                    seen.setdefault(id(entry.texture), entry.texture)
        return sorted(seen.values(), key=lambda t: t.index)
