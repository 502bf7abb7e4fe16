"""Conversions between raw bytes, integers and chunk tags.

Two and four byte values are signed two's complement (PCM samples and RIFF
sizes share the same helper); single bytes are unsigned.  A three byte value
is padded to four bytes with a zero most-significant byte before conversion,
which is how MIDI stores its 24-bit tempo.
"""

from __future__ import annotations


def _pad_three(data: bytes, little_endian: bool) -> bytes:
    if little_endian:
        return data + b"\x00"
    return b"\x00" + data


def bytes_to_int(data: bytes, little_endian: bool = False) -> int:
    """Interpret 1-4 raw bytes as an integer (big-endian by default)."""

    size = len(data)
    if size == 3:
        data = _pad_three(bytes(data), little_endian)
        size = 4
    order = "little" if little_endian else "big"
    if size == 1:
        return data[0]
    if size in (2, 4):
        return int.from_bytes(data, order, signed=True)
    raise ValueError(f"cannot convert {size} bytes to an integer (need 1-4)")


def int_to_bytes(value: int, length: int, little_endian: bool = False) -> bytes:
    """Inverse of :func:`bytes_to_int` for ``length`` in 1-4."""

    order = "little" if little_endian else "big"
    if length in (1, 3):
        return value.to_bytes(length, order, signed=False)
    if length in (2, 4):
        return value.to_bytes(length, order, signed=True)
    raise ValueError(f"cannot encode an integer into {length} bytes (need 1-4)")


def bytes_to_ascii(data: bytes) -> str:
    return "".join(chr(b) for b in data)


def to_int16(value: int) -> int:
    """Wrap ``value`` into the signed 16-bit range like a narrowing cast."""

    return ((value + 0x8000) & 0xFFFF) - 0x8000


def trunc_div(numerator: int, denominator: int) -> int:
    """Integer division truncating toward zero."""

    quotient = abs(numerator) // abs(denominator)
    if (numerator < 0) != (denominator < 0):
        return -quotient
    return quotient
