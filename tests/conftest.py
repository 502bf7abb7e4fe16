from __future__ import annotations

from pathlib import Path
import struct
import sys
from typing import Iterable, Sequence


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from midify.records import encode_vlv  # noqa: E402


# ── MIDI builders ──────────────────────────────────────────────────


def midi_event(delta: int, *payload: int) -> bytes:
    return encode_vlv(delta) + bytes(payload)


def midi_track(*events: bytes, end: bool = True) -> bytes:
    body = b"".join(events)
    if end:
        body += midi_event(0, 0xFF, 0x2F, 0x00)
    return b"MTrk" + struct.pack(">I", len(body)) + body


def midi_file(
    *tracks: bytes,
    fmt: int = 1,
    division: int = 480,
    track_count: int | None = None,
) -> bytes:
    count = len(tracks) if track_count is None else track_count
    header = b"MThd" + struct.pack(">IHHH", 6, fmt, count, division)
    return header + b"".join(tracks)


# ── WAVE builders ──────────────────────────────────────────────────


def _encode_channel(value: int, bits: int) -> bytes:
    if bits == 8:
        return struct.pack("<B", value)
    if bits == 16:
        return struct.pack("<h", value)
    if bits == 24:
        return (value & 0xFFFFFF).to_bytes(3, "little")
    return struct.pack("<i", value)


def wave_file(
    frames: Iterable[Sequence[int]],
    *,
    bits: int = 16,
    channels: int = 2,
    sample_rate: int = 44100,
    format_tag: int = 1,
    fmt_size: int = 16,
    riff: bytes = b"RIFF",
    wave_tag: bytes = b"WAVE",
    fmt_prefix: bytes = b"fmt ",
    extra_chunks: Sequence[bytes] = (),
    data_prefix: bytes = b"data",
) -> bytes:
    data = b"".join(
        b"".join(_encode_channel(v, bits) for v in frame) for frame in frames
    )
    block_align = channels * bits // 8
    fmt = fmt_prefix + struct.pack(
        "<IHHIIHH",
        fmt_size,
        format_tag,
        channels,
        sample_rate,
        sample_rate * block_align,
        block_align,
        bits,
    )
    body = wave_tag + fmt + b"".join(extra_chunks) + data_prefix + struct.pack("<I", len(data)) + data
    return riff + struct.pack("<I", len(body)) + body


def list_chunk(payload: bytes = b"INFOISFT\x04\x00\x00\x00test") -> bytes:
    return b"LIST" + struct.pack("<I", len(payload)) + payload

