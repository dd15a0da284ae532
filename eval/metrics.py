"""Map statistics computation."""

from __future__ import annotations

from collections import Counter
from typing import Any

import numpy as np

from config_io.schema import NUM_LAYERS
from sim.game_map import GameMap


def compute_map_stats(game_map: GameMap) -> dict[str, Any]:
    """Compute summary statistics for a loaded map."""
    report = game_map.report.to_dict() if game_map.report else {}
    store = game_map.store
    if store is None:
        return {"loaded": False, "report": report}

    walkable = store.walkable_mask()
    n_cells = int(walkable.size)
    n_walkable = int(np.count_nonzero(walkable))

    # Textured cells per layer and texture usage across all layers
    layer_counts = np.zeros(NUM_LAYERS, dtype=np.int64)
    usage: Counter[str] = Counter()
    for _, layers in store.layered_cells():
        for layer, entry in enumerate(layers):
            if entry is not None:
                layer_counts[layer] += 1
                usage[entry.texture.name] += 1

    return {
        "loaded": True,
        "width": store.width,
        "height": store.height,
        "cells": n_cells,
        "cells_from_file": int(np.count_nonzero(store.loaded_mask)),
        "walkable_cells": n_walkable,
        "blocked_cells": n_cells - n_walkable,
        "walkable_ratio": round(n_walkable / max(n_cells, 1), 4),
        "textured_per_layer": [int(n) for n in layer_counts],
        "texture_usage": dict(usage.most_common()),
        "terrain_textures": len(game_map.terrain_textures),
        "terrain_zones": len(game_map.terrain_zones),
        "terrain_areas": len(game_map.terrain_areas),
        "report": report,
    }
