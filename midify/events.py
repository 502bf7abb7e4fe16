"""Decode MIDI track events.

Every event starts with a delta-time VLV and a status byte.  The status
selects the rest of the layout:

  0xFF        meta event: type byte, VLV length, ``length`` data bytes.
              Only tempo (0x51, 3 bytes) and time signature (0x58, 4 bytes)
              are kept; other meta types are skipped.
  0xF0 / 0xF7 system exclusive: not supported.
  0x8n / 0x9n note off / on: pitch, velocity
  0xBn        controller: controller number, value
  0xCn / 0xDn program change / channel aftertouch: 1 byte, dropped
  0xAn / 0xEn poly aftertouch / pitch bend: 2 bytes, dropped

``n`` is the channel.  Running status is not supported, so a data byte in
status position is reported as an unknown event type.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import ClassVar, Optional, Tuple, Union

from .byteconv import bytes_to_int, int_to_bytes
from .errors import MalformedEventError, UnknownEventTypeError, UnsupportedSysExError
from .records import (
    ByteStream,
    Schema,
    Vlv,
    byte,
    encode_record,
    encode_vlv,
    fixed,
    read_record,
    schema,
    vlv,
)

META_STATUS = 0xFF
SYSEX_STATUSES = frozenset({0xF0, 0xF7})
DEFAULT_MICROSECONDS_PER_QUARTER = 500_000

EVENT_HEAD = schema(vlv("delta"), byte("status"))
META_HEAD = schema(byte("meta_type"), vlv("length"))


class MidiEventType(enum.IntEnum):
    """High nibble of a channel-voice status byte."""

    NOTE_OFF = 0x8
    NOTE_ON = 0x9
    POLYPHONIC_AFTERTOUCH = 0xA
    CONTROLLER = 0xB
    INSTRUMENT = 0xC
    CHANNEL_AFTERTOUCH = 0xD
    PITCH_BEND = 0xE


class MetaEventType(enum.IntEnum):
    TEMPO = 0x51
    TIME_SIGNATURE = 0x58


class ControllerType(enum.IntEnum):
    NOTES_OFF = 0x7B


# Payload bytes discarded for channel-voice events that are not retained.
_DROPPED_PAYLOAD = {
    MidiEventType.INSTRUMENT: 1,
    MidiEventType.CHANNEL_AFTERTOUCH: 1,
    MidiEventType.POLYPHONIC_AFTERTOUCH: 2,
    MidiEventType.PITCH_BEND: 2,
}


class EventKind(enum.Enum):
    NOTE = "note"
    CONTROLLER = "controller"
    TEMPO = "tempo"
    TIME_SIGNATURE = "time_signature"


@dataclass(frozen=True)
class NoteData:
    LAYOUT: ClassVar[Schema] = schema(byte("pitch"), byte("velocity"))

    pitch: int
    velocity: int

    def encode(self) -> bytes:
        return encode_record({"pitch": self.pitch, "velocity": self.velocity}, self.LAYOUT)


@dataclass(frozen=True)
class ControllerData:
    LAYOUT: ClassVar[Schema] = schema(byte("controller"), byte("value"))

    controller: int
    value: int

    def encode(self) -> bytes:
        return encode_record(
            {"controller": self.controller, "value": self.value}, self.LAYOUT
        )


@dataclass(frozen=True)
class TempoData:
    LAYOUT: ClassVar[Schema] = schema(fixed("microseconds", 3))

    microseconds_per_quarter: int = DEFAULT_MICROSECONDS_PER_QUARTER

    @property
    def seconds_per_quarter(self) -> float:
        return self.microseconds_per_quarter / 1_000_000

    @property
    def bpm(self) -> float:
        return 60_000_000 / self.microseconds_per_quarter

    def seconds_per_tick(self, division: int) -> float:
        return self.seconds_per_quarter / division

    def encode(self) -> bytes:
        raw = int_to_bytes(self.microseconds_per_quarter, 3)
        return bytes([MetaEventType.TEMPO, 3]) + raw


@dataclass(frozen=True)
class TimeSignatureData:
    LAYOUT: ClassVar[Schema] = schema(
        byte("numerator"),
        byte("denominator"),
        byte("clocks_per_click"),
        byte("thirty_seconds_per_quarter"),
    )

    numerator: int
    denominator: int  # power-of-two exponent: 2 means a quarter note
    clocks_per_click: int
    thirty_seconds_per_quarter: int

    @property
    def beat_unit(self) -> int:
        return 1 << self.denominator

    def encode(self) -> bytes:
        body = encode_record(
            {
                "numerator": self.numerator,
                "denominator": self.denominator,
                "clocks_per_click": self.clocks_per_click,
                "thirty_seconds_per_quarter": self.thirty_seconds_per_quarter,
            },
            self.LAYOUT,
        )
        return bytes([MetaEventType.TIME_SIGNATURE, 4]) + body


Payload = Union[NoteData, ControllerData, TempoData, TimeSignatureData]


@dataclass(frozen=True)
class TrackEvent:
    """One retained track event: shared timing fields plus a kind-specific payload."""

    delta: Vlv
    status: int
    absolute_tick: int
    kind: EventKind
    payload: Payload

    @property
    def delta_time(self) -> int:
        return self.delta.value

    @property
    def event_type(self) -> int:
        return self.status >> 4

    @property
    def channel(self) -> int:
        return self.status & 0x0F

    @property
    def is_note(self) -> bool:
        return self.kind is EventKind.NOTE

    def to_bytes(self) -> bytes:
        head = encode_vlv(self.delta.value) + bytes([self.status])
        return head + self.payload.encode()


def _read_meta(
    stream: ByteStream, delta: Vlv, tick: int, start: int
) -> Tuple[Optional[TrackEvent], int]:
    head, consumed = read_record(stream, META_HEAD)
    meta_type = head["meta_type"]
    length = head["length"].value

    if meta_type == MetaEventType.TEMPO:
        if length != 3:
            raise MalformedEventError(f"tempo event declares {length} bytes, expected 3", start)
        values, size = read_record(stream, TempoData.LAYOUT)
        payload: Payload = TempoData(bytes_to_int(values["microseconds"]))
        kind = EventKind.TEMPO
    elif meta_type == MetaEventType.TIME_SIGNATURE:
        if length != 4:
            raise MalformedEventError(
                f"time signature event declares {length} bytes, expected 4", start
            )
        values, size = read_record(stream, TimeSignatureData.LAYOUT)
        payload = TimeSignatureData(**values)
        kind = EventKind.TIME_SIGNATURE
    else:
        stream.skip(length)
        return None, consumed + length

    event = TrackEvent(delta=delta, status=META_STATUS, absolute_tick=tick, kind=kind, payload=payload)
    return event, consumed + size


def _read_channel_voice(
    stream: ByteStream, status: int, delta: Vlv, tick: int, start: int
) -> Tuple[Optional[TrackEvent], int]:
    event_type = status >> 4

    if event_type in (MidiEventType.NOTE_ON, MidiEventType.NOTE_OFF):
        values, size = read_record(stream, NoteData.LAYOUT)
        payload: Payload = NoteData(**values)
        kind = EventKind.NOTE
    elif event_type == MidiEventType.CONTROLLER:
        values, size = read_record(stream, ControllerData.LAYOUT)
        payload = ControllerData(**values)
        kind = EventKind.CONTROLLER
    elif event_type in _DROPPED_PAYLOAD:
        size = _DROPPED_PAYLOAD[event_type]
        stream.skip(size)
        return None, size
    else:
        raise UnknownEventTypeError(f"unknown midi event type 0x{status:02X}", start)

    event = TrackEvent(delta=delta, status=status, absolute_tick=tick, kind=kind, payload=payload)
    return event, size


def read_event(stream: ByteStream, tick: int) -> Tuple[Optional[TrackEvent], int, int]:
    """Decode the next event of a track.

    ``tick`` is the running tick total before this event.  Returns the event
    (``None`` when it is dropped), the number of bytes consumed and the new
    running tick total.
    """

    start = stream.tell()
    head, consumed = read_record(stream, EVENT_HEAD)
    delta: Vlv = head["delta"]
    status: int = head["status"]
    tick += delta.value

    if status in SYSEX_STATUSES:
        raise UnsupportedSysExError("system exclusive events are not supported", start)
    if status == META_STATUS:
        event, size = _read_meta(stream, delta, tick, start)
    else:
        event, size = _read_channel_voice(stream, status, delta, tick, start)
    return event, consumed + size, tick
