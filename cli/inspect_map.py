"""CLI command: load a map file and print a summary."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pydantic import ValidationError

from config_io.config import load_config
from eval.metrics import compute_map_stats
from sim.game_map import GameMap


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Load a binary map file and summarize it")
    parser.add_argument("--map", type=str, required=True, help="Path to the .map file")
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config file")
    parser.add_argument("--max-map-size", type=int, default=None, help="Override the map size cap")
    args = parser.parse_args(argv)

    overrides = {}
    if args.max_map_size is not None:
        overrides["map_format"] = {"max_map_size": args.max_map_size}
    try:
        config = load_config(args.config, overrides)
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}")
        return 1

    logging.basicConfig(level=config.logging.level, format=config.logging.format)

    game_map = GameMap(config)
    ok = game_map.load(args.map)
    report = game_map.report

    if not ok:
        print(f"Failed to load {args.map}: {report.failure.value} ({report.error})")
        return 1

    stats = compute_map_stats(game_map)

    print("\n=== Map Summary ===")
    print(f"  Size: {stats['width']}x{stats['height']} ({stats['cells']} cells)")
    print(f"  Cells from file: {stats['cells_from_file']}")
    print(f"  Walkable: {stats['walkable_cells']} ({stats['walkable_ratio']:.3f}), "
          f"blocked: {stats['blocked_cells']}")
    print(f"  Textures per layer: {stats['textured_per_layer']}")
    print(f"  Distinct textures in use: {len(stats['texture_usage'])}")
    print(f"  Terrain textures: {stats['terrain_textures']}, zones: {stats['terrain_zones']}, "
          f"areas: {stats['terrain_areas']}")
    print(f"  Dropped records: {report.dropped}")
    for anomaly, count in sorted(report.anomalies.items(), key=lambda kv: kv[0].value):
        print(f"    {anomaly.value}: {count}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
