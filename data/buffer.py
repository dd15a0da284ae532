"""Cursor-addressed byte buffer with typed read/write primitives.

Every primitive is stored little-endian regardless of the host, so files
written on one machine decode identically on any other.

Reads never fail: a primitive that does not fit in the remaining bytes
comes back as its zero value and the cursor jumps to the end of the
buffer. A string whose length prefix is negative or larger than what is
left comes back empty with only the prefix consumed.
"""

from __future__ import annotations

import enum
import struct
from typing import Union

Number = Union[int, float, bool]


class Primitive(enum.Enum):
    INT8 = ("<b", 0)
    UINT8 = ("<B", 0)
    INT16 = ("<h", 0)
    UINT16 = ("<H", 0)
    INT32 = ("<i", 0)
    UINT32 = ("<I", 0)
    INT64 = ("<q", 0)
    UINT64 = ("<Q", 0)
    FLOAT32 = ("<f", 0.0)
    FLOAT64 = ("<d", 0.0)
    BOOL = ("<?", False)

    def __init__(self, fmt: str, zero: Number):
        self.codec = struct.Struct(fmt)
        self.zero = zero

    @property
    def size(self) -> int:
        return self.codec.size


class SerializationBuffer:
    """Growable byte container with an internal read cursor."""

    def __init__(self, data: bytes | bytearray | None = None):
        self._data = bytearray(data or b"")
        self._pos = 0

    # ── Generic primitives ─────────────────────────────────────────────

    def put(self, kind: Primitive, value: Number) -> "SerializationBuffer":
        try:
            self._data += kind.codec.pack(value)
        except struct.error as e:
            raise ValueError(f"Cannot encode {value!r} as {kind.name}: {e}") from e
        return self

    def get(self, kind: Primitive) -> Number:
        end = self._pos + kind.size
        if end > len(self._data):
            self._pos = len(self._data)
            return kind.zero
        (value,) = kind.codec.unpack_from(self._data, self._pos)
        self._pos = end
        return value

    # ── Typed shortcuts ────────────────────────────────────────────────

    def put_int8(self, value: int) -> "SerializationBuffer":
        return self.put(Primitive.INT8, value)

    def put_uint8(self, value: int) -> "SerializationBuffer":
        return self.put(Primitive.UINT8, value)

    def put_int16(self, value: int) -> "SerializationBuffer":
        return self.put(Primitive.INT16, value)

    def put_uint16(self, value: int) -> "SerializationBuffer":
        return self.put(Primitive.UINT16, value)

    def put_int32(self, value: int) -> "SerializationBuffer":
        return self.put(Primitive.INT32, value)

    def put_uint32(self, value: int) -> "SerializationBuffer":
        return self.put(Primitive.UINT32, value)

    def put_int64(self, value: int) -> "SerializationBuffer":
        return self.put(Primitive.INT64, value)

    def put_uint64(self, value: int) -> "SerializationBuffer":
        return self.put(Primitive.UINT64, value)

    def put_float32(self, value: float) -> "SerializationBuffer":
        return self.put(Primitive.FLOAT32, value)

    def put_float64(self, value: float) -> "SerializationBuffer":
        return self.put(Primitive.FLOAT64, value)

    def put_bool(self, value: bool) -> "SerializationBuffer":
        return self.put(Primitive.BOOL, bool(value))

    def get_int8(self) -> int:
        return self.get(Primitive.INT8)

    def get_uint8(self) -> int:
        return self.get(Primitive.UINT8)

    def get_int16(self) -> int:
        return self.get(Primitive.INT16)

    def get_uint16(self) -> int:
        return self.get(Primitive.UINT16)

    def get_int32(self) -> int:
        return self.get(Primitive.INT32)

    def get_uint32(self) -> int:
        return self.get(Primitive.UINT32)

    def get_int64(self) -> int:
        return self.get(Primitive.INT64)

    def get_uint64(self) -> int:
        return self.get(Primitive.UINT64)

    def get_float32(self) -> float:
        return self.get(Primitive.FLOAT32)

    def get_float64(self) -> float:
        return self.get(Primitive.FLOAT64)

    def get_bool(self) -> bool:
        return self.get(Primitive.BOOL)

    # ── Strings ────────────────────────────────────────────────────────

    def put_string(self, value: str) -> "SerializationBuffer":
        raw = value.encode("utf-8")
        self.put_int32(len(raw))
        self._data += raw
        return self

    def get_string(self) -> str:
        length = self.get_int32()
        if length < 0 or length > self.remaining():
            return ""
        raw = bytes(self._data[self._pos:self._pos + length])
        self._pos += length
        return raw.decode("utf-8", errors="replace")

    # ── Raw access and cursor ──────────────────────────────────────────

    def write(self, raw: bytes | bytearray) -> "SerializationBuffer":
        """Append raw bytes with no length prefix."""
        self._data += raw
        return self

    @property
    def data(self) -> bytes:
        return bytes(self._data)

    @property
    def read_pos(self) -> int:
        return self._pos

    @property
    def size(self) -> int:
        return len(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def empty(self) -> bool:
        return not self._data

    def remaining(self) -> int:
        return len(self._data) - self._pos

    def at_end(self) -> bool:
        return self._pos >= len(self._data)

    def reset(self) -> None:
        self._pos = 0

    def clear(self) -> None:
        self._data.clear()
        self._pos = 0

    def erase_front(self, count: int) -> None:
        """Drop the first `count` bytes, shifting the cursor with them."""
        count = max(0, min(count, len(self._data)))
        del self._data[:count]
        self._pos = max(0, self._pos - count)
