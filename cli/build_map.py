"""CLI command: build a binary map file from a YAML or JSON description."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pydantic import ValidationError

from config_io.config import load_config
from config_io.schema import MapDocument
from config_io.utils import load_structured
from data.map_format import encode_map
from data.map_io import write_map_file


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Encode a map description into the binary map format")
    parser.add_argument("--src", type=str, required=True, help="YAML or JSON map description")
    parser.add_argument("--out", type=str, required=True, help="Output .map path")
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config file")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}")
        return 1
    logging.basicConfig(level=config.logging.level, format=config.logging.format)

    data = load_structured(args.src)
    # A dump file wraps the document under "map"
    if isinstance(data, dict) and "map" in data and "map_size" not in data:
        data = data["map"]

    try:
        document = MapDocument(**data)
    except ValidationError as e:
        logging.error(f"Invalid map description {args.src}:\n{e}")
        return 1

    path = write_map_file(args.out, encode_map(document))
    logging.info(f"Wrote {document.map_size}x{document.map_size} map "
                 f"({len(document.cells)} cell records) to {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
