"""Shared utilities."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml


def save_json(data: Any, path: str | Path, indent: int = 2) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w") as f:
        json.dump(data, f, indent=indent, default=str)


def load_json(path: str | Path) -> Any:
    with open(path) as f:
        return json.load(f)


def load_structured(path: str | Path) -> Any:
    """Load a JSON or YAML file, chosen by extension."""
    p = Path(path)
    if p.suffix.lower() == ".json":
        return load_json(p)
    with open(p) as f:
        return yaml.safe_load(f) or {}
