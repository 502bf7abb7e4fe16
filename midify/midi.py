"""Standard MIDI file container: ``MThd`` header followed by ``MTrk`` chunks.

All multi-byte header fields are big-endian.  Tempo and time-signature meta
events are lifted out of the tracks into file-wide change lists; a track left
with no events afterwards (a typical format 1 conductor track) is dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, List, Union

from .byteconv import bytes_to_ascii, bytes_to_int, int_to_bytes
from .errors import MalformedHeaderError, UnsupportedFeatureError
from .events import EventKind, TrackEvent, read_event
from .records import ByteStream, encode_record, fixed, read_record, schema

if TYPE_CHECKING:
    from .wave import Wave

logger = logging.getLogger(__name__)

HEADER_MAGIC = b"MThd"
TRACK_MAGIC = b"MTrk"
HEADER_DATA_SIZE = 6
MULTI_SONG_FORMAT = 2

HEADER_LAYOUT = schema(
    fixed("prefix", 4),
    fixed("size", 4),
    fixed("format", 2),
    fixed("tracks", 2),
    fixed("division", 2),
)
TRACK_LAYOUT = schema(fixed("prefix", 4), fixed("size", 4))


@dataclass(frozen=True)
class MidiHeader:
    prefix: bytes
    size: bytes
    format: bytes
    tracks: bytes
    division: bytes

    @property
    def declared_size(self) -> int:
        return bytes_to_int(self.size)

    @property
    def format_type(self) -> int:
        return bytes_to_int(self.format)

    @property
    def track_count(self) -> int:
        return bytes_to_int(self.tracks)

    @property
    def ticks_per_quarter(self) -> int:
        """Division as ticks per quarter note (negative for SMPTE timing)."""

        return bytes_to_int(self.division)

    @classmethod
    def build(cls, format_type: int, track_count: int, division: int) -> "MidiHeader":
        return cls(
            prefix=HEADER_MAGIC,
            size=int_to_bytes(HEADER_DATA_SIZE, 4),
            format=int_to_bytes(format_type, 2),
            tracks=int_to_bytes(track_count, 2),
            division=int_to_bytes(division, 2),
        )

    @classmethod
    def read(cls, stream: ByteStream) -> "MidiHeader":
        start = stream.tell()
        values, _ = read_record(stream, HEADER_LAYOUT)
        header = cls(**values)

        if header.prefix != HEADER_MAGIC:
            raise MalformedHeaderError(
                f"header does not start with 'MThd' (got {bytes_to_ascii(header.prefix)!r})",
                start,
            )
        if header.declared_size != HEADER_DATA_SIZE:
            raise MalformedHeaderError(
                f"header declares {header.declared_size} bytes, expected {HEADER_DATA_SIZE}",
                start + 4,
            )
        if header.format_type == MULTI_SONG_FORMAT:
            raise UnsupportedFeatureError(
                "multi-song midi files (format 2) are not supported", start + 8
            )
        if header.ticks_per_quarter < 0:
            raise UnsupportedFeatureError("SMPTE time division is not supported", start + 12)
        if header.ticks_per_quarter == 0:
            raise MalformedHeaderError("time division is zero", start + 12)
        return header

    def to_bytes(self) -> bytes:
        return encode_record(
            {
                "prefix": self.prefix,
                "size": self.size,
                "format": self.format,
                "tracks": self.tracks,
                "division": self.division,
            },
            HEADER_LAYOUT,
        )


@dataclass
class TrackChunk:
    prefix: bytes
    size: bytes
    tick_size: int = 0  # sum of every delta time in the chunk
    events: List[TrackEvent] = field(default_factory=list)

    @property
    def byte_length(self) -> int:
        return bytes_to_int(self.size)


@dataclass
class Midi:
    header: MidiHeader
    tracks: List[TrackChunk] = field(default_factory=list)
    tempo_changes: List[TrackEvent] = field(default_factory=list)
    time_signature_changes: List[TrackEvent] = field(default_factory=list)

    @property
    def division(self) -> int:
        return self.header.ticks_per_quarter

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Midi":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"midi file does not exist: {path}")
        with path.open("rb") as handle:
            return cls.read(handle)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Midi":
        return cls.read_stream(ByteStream.from_bytes(data))

    @classmethod
    def read(cls, handle: BinaryIO) -> "Midi":
        return cls.read_stream(ByteStream(handle))

    @classmethod
    def read_stream(cls, stream: ByteStream) -> "Midi":
        header = MidiHeader.read(stream)
        midi = cls(header=header)
        for index in range(header.track_count):
            midi.tracks.append(midi._read_track(stream, index))
        midi._normalize()
        logger.debug(
            "loaded midi: format %d, %d track(s), division %d, %d tempo change(s)",
            header.format_type,
            len(midi.tracks),
            header.ticks_per_quarter,
            len(midi.tempo_changes),
        )
        return midi

    def _read_track(self, stream: ByteStream, index: int) -> TrackChunk:
        start = stream.tell()
        values, _ = read_record(stream, TRACK_LAYOUT)
        track = TrackChunk(prefix=values["prefix"], size=values["size"])
        if track.prefix != TRACK_MAGIC:
            raise MalformedHeaderError(
                f"track {index} does not start with 'MTrk' "
                f"(got {bytes_to_ascii(track.prefix)!r})",
                start,
            )

        consumed = 0
        while consumed < track.byte_length:
            event, size, track.tick_size = read_event(stream, track.tick_size)
            consumed += size
            if event is None:
                continue
            if event.kind is EventKind.TEMPO:
                self.tempo_changes.append(event)
            elif event.kind is EventKind.TIME_SIGNATURE:
                self.time_signature_changes.append(event)
            else:
                track.events.append(event)

        if consumed != track.byte_length:
            logger.warning(
                "track %d declares %d bytes but its events used %d",
                index,
                track.byte_length,
                consumed,
            )
        return track

    def _normalize(self) -> None:
        self.tempo_changes.sort(key=lambda e: e.absolute_tick)
        self.time_signature_changes.sort(key=lambda e: e.absolute_tick)

        kept = [t for t in self.tracks if t.events]
        if len(kept) != len(self.tracks):
            logger.debug("dropping %d track(s) without events", len(self.tracks) - len(kept))
        self.tracks = kept
        for track in self.tracks:
            track.events.sort(key=lambda e: e.absolute_tick)

    def track_to_wave(self, track: Union[int, TrackChunk], clip: "Wave") -> "Wave":
        """Render one track (by index or chunk) with ``clip`` as the voice of every note."""

        from .render import render_track

        if isinstance(track, int):
            track = self.tracks[track]
        return render_track(track, clip, self.tempo_changes, self.division)
