"""CLI command: export a map file as JSON."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pydantic import ValidationError

from config_io.config import load_config
from config_io.utils import save_json
from eval.metrics import compute_map_stats
from sim.game_map import GameMap


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Dump a binary map file to JSON")
    parser.add_argument("--map", type=str, required=True, help="Path to the .map file")
    parser.add_argument("--out", type=str, required=True, help="Output JSON path")
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config file")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}")
        return 1
    logging.basicConfig(level=config.logging.level, format=config.logging.format)

    game_map = GameMap(config)
    if not game_map.load(args.map):
        logging.error(f"Failed to load {args.map}: {game_map.report.failure.value}")
        return 1

    data = {"map": game_map.to_document().model_dump()}
    if config.dump.include_stats:
        data["stats"] = compute_map_stats(game_map)

    save_json(data, args.out, indent=config.dump.indent)
    logging.info(f"Map dumped to {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
