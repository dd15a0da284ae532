"""Map file I/O: whole-file reads and writes, nothing streamed."""

from __future__ import annotations

import logging
from pathlib import Path

from data.buffer import SerializationBuffer

logger = logging.getLogger(__name__)


def read_map_bytes(path: str | Path) -> bytes:
    """Read an entire map file into memory.

    Raises OSError if the file is unreadable and ValueError for a malformed path.
    """
    p = Path(path)
    data = p.read_bytes()
    logger.debug(f"Read {len(data)} bytes from {p}")
    return data


def write_map_file(path: str | Path, data: bytes | SerializationBuffer) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    raw = data.data if isinstance(data, SerializationBuffer) else bytes(data)
    p.write_bytes(raw)
    logger.debug(f"Wrote {len(raw)} bytes to {p}")
    return p
