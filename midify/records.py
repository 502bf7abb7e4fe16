"""Schema-driven reading and writing of fixed-layout binary records.

A record layout is a tuple of :class:`Field` entries.  The field order is the
byte order in the stream; each field is one of:

  BYTES  : fixed-length block, kept as ``bytes``
  BYTE   : single byte, kept as ``int``
  INT32  : four bytes converted with the record's endianness
  VLV    : MIDI variable-length quantity, kept as :class:`Vlv`

At most one VLV field may appear in a layout.

VLV encoding: every byte carries 7 data bits, bit 7 set means another byte
follows.  Groups are most-significant first, e.g. ``81 00`` is 128 and
``FF FF FF 7F`` is 0x0FFFFFFF (the largest legal value).
"""

from __future__ import annotations

import enum
import io
import os
from dataclasses import dataclass
from typing import BinaryIO, Dict, Iterable, Tuple

from .byteconv import bytes_to_int, int_to_bytes
from .errors import MalformedEventError, TruncatedStreamError

MAX_VLV_BYTES = 4
MAX_VLV_VALUE = (1 << (7 * MAX_VLV_BYTES)) - 1


class FieldKind(enum.Enum):
    BYTES = "bytes"
    BYTE = "byte"
    INT32 = "int32"
    VLV = "vlv"


@dataclass(frozen=True)
class Field:
    name: str
    kind: FieldKind
    length: int = 1


def fixed(name: str, length: int) -> Field:
    return Field(name, FieldKind.BYTES, length)


def byte(name: str) -> Field:
    return Field(name, FieldKind.BYTE, 1)


def int32(name: str) -> Field:
    return Field(name, FieldKind.INT32, 4)


def vlv(name: str) -> Field:
    return Field(name, FieldKind.VLV, 0)


Schema = Tuple[Field, ...]


def schema(*fields: Field) -> Schema:
    """Build a record layout, rejecting duplicate names and extra VLVs."""

    names = [f.name for f in fields]
    if len(set(names)) != len(names):
        raise ValueError(f"duplicate field names in schema: {names}")
    vlv_count = sum(1 for f in fields if f.kind is FieldKind.VLV)
    if vlv_count > 1:
        raise ValueError(f"schema may hold at most one VLV field, got {vlv_count}")
    return tuple(fields)


@dataclass(frozen=True)
class Vlv:
    """A decoded variable-length quantity.

    ``raw`` is the big-endian value padded to the number of encoded bytes, so
    a three byte VLV keeps three raw bytes.
    """

    raw: bytes
    value: int

    @classmethod
    def of(cls, value: int) -> "Vlv":
        return cls(raw=value.to_bytes(len(encode_vlv(value)), "big"), value=value)


class ByteStream:
    """Forward reader over a binary file object with offset-aware errors."""

    def __init__(self, handle: BinaryIO) -> None:
        self.handle = handle
        start = handle.tell()
        handle.seek(0, os.SEEK_END)
        self.length = handle.tell()
        handle.seek(start)

    @classmethod
    def from_bytes(cls, data: bytes) -> "ByteStream":
        return cls(io.BytesIO(data))

    def tell(self) -> int:
        return self.handle.tell()

    def remaining(self) -> int:
        return self.length - self.tell()

    def read(self, size: int) -> bytes:
        offset = self.tell()
        data = self.handle.read(size)
        if len(data) != size:
            raise TruncatedStreamError(
                f"stream ended after {len(data)} of {size} bytes", offset
            )
        return data

    def read_byte(self) -> int:
        return self.read(1)[0]

    def skip(self, size: int) -> None:
        if size < 0:
            raise ValueError(f"cannot skip a negative byte count ({size})")
        if size > self.remaining():
            raise TruncatedStreamError(
                f"cannot skip {size} bytes, only {self.remaining()} left", self.tell()
            )
        self.handle.seek(size, os.SEEK_CUR)

    def rewind(self, size: int) -> None:
        if size > self.tell():
            raise ValueError(f"cannot rewind {size} bytes from offset {self.tell()}")
        self.handle.seek(-size, os.SEEK_CUR)


def read_vlv(stream: ByteStream) -> Tuple[Vlv, int]:
    """Decode one VLV; returns the value and the number of bytes consumed."""

    start = stream.tell()
    value = 0
    consumed = 0
    while True:
        b = stream.read_byte()
        consumed += 1
        value = (value << 7) | (b & 0x7F)
        if b < 0x80:
            break
        if consumed == MAX_VLV_BYTES:
            raise MalformedEventError(
                f"variable-length value longer than {MAX_VLV_BYTES} bytes", start
            )
    return Vlv(raw=value.to_bytes(consumed, "big"), value=value), consumed


def encode_vlv(value: int) -> bytes:
    if value < 0 or value > MAX_VLV_VALUE:
        raise ValueError(f"VLV value out of range: {value}")
    groups = [value & 0x7F]
    value >>= 7
    while value:
        groups.append((value & 0x7F) | 0x80)
        value >>= 7
    return bytes(reversed(groups))


def read_record(
    stream: ByteStream,
    layout: Schema,
    *,
    skip: Iterable[str] = (),
    little_endian: bool = False,
) -> Tuple[Dict[str, object], int]:
    """Read ``layout`` from ``stream``; returns field values and bytes consumed."""

    skipped = frozenset(skip)
    values: Dict[str, object] = {}
    consumed = 0
    for field in layout:
        if field.name in skipped:
            continue
        if field.kind is FieldKind.VLV:
            values[field.name], size = read_vlv(stream)
            consumed += size
        elif field.kind is FieldKind.BYTES:
            values[field.name] = stream.read(field.length)
            consumed += field.length
        elif field.kind is FieldKind.BYTE:
            values[field.name] = stream.read_byte()
            consumed += 1
        else:
            values[field.name] = bytes_to_int(stream.read(4), little_endian)
            consumed += 4
    return values, consumed


def encode_record(
    values: Dict[str, object],
    layout: Schema,
    *,
    skip: Iterable[str] = (),
    little_endian: bool = False,
) -> bytes:
    skipped = frozenset(skip)
    buf = bytearray()
    for field in layout:
        if field.name in skipped:
            continue
        value = values[field.name]
        if field.kind is FieldKind.VLV:
            number = value.value if isinstance(value, Vlv) else int(value)
            buf.extend(encode_vlv(number))
        elif field.kind is FieldKind.BYTES:
            raw = bytes(value)
            if len(raw) != field.length:
                raise ValueError(
                    f"field {field.name!r} holds {len(raw)} bytes, expected {field.length}"
                )
            buf.extend(raw)
        elif field.kind is FieldKind.BYTE:
            buf.append(int(value) & 0xFF)
        else:
            buf.extend(int_to_bytes(int(value), 4, little_endian))
    return bytes(buf)


def write_record(
    out: BinaryIO,
    values: Dict[str, object],
    layout: Schema,
    *,
    skip: Iterable[str] = (),
    little_endian: bool = False,
) -> int:
    """Serialize ``values`` in ``layout`` order; returns bytes written."""

    data = encode_record(values, layout, skip=skip, little_endian=little_endian)
    out.write(data)
    return len(data)
