"""Tests for decoding individual MIDI track events."""

import pytest

from midify.errors import (
    MalformedEventError,
    TruncatedStreamError,
    UnknownEventTypeError,
    UnsupportedSysExError,
)
from midify.events import (
    ControllerData,
    EventKind,
    MidiEventType,
    NoteData,
    TempoData,
    TimeSignatureData,
    TrackEvent,
    read_event,
)
from midify.records import ByteStream, Vlv

from conftest import midi_event


def decode(data: bytes, tick: int = 0):
    return read_event(ByteStream.from_bytes(data), tick)


# ── channel voice ──────────────────────────────────────────────────


def test_note_on():
    event, consumed, tick = decode(midi_event(0, 0x90, 60, 100))
    assert consumed == 4
    assert tick == 0
    assert event.kind is EventKind.NOTE
    assert event.is_note
    assert event.event_type == MidiEventType.NOTE_ON
    assert event.channel == 0
    assert event.payload == NoteData(pitch=60, velocity=100)


def test_note_off_on_channel_and_running_tick():
    event, consumed, tick = decode(midi_event(0x60, 0x83, 64, 0), tick=10)
    assert consumed == 4
    assert tick == 0x6A
    assert event.absolute_tick == 0x6A
    assert event.delta_time == 0x60
    assert event.event_type == MidiEventType.NOTE_OFF
    assert event.channel == 3


def test_two_byte_delta():
    event, consumed, tick = decode(b"\x81\x00\x90\x3C\x40")
    assert consumed == 5
    assert tick == 128
    assert event.delta == Vlv(raw=b"\x00\x80", value=128)


def test_controller():
    event, consumed, _ = decode(midi_event(0, 0xB2, 0x07, 90))
    assert consumed == 4
    assert event.kind is EventKind.CONTROLLER
    assert not event.is_note
    assert event.channel == 2
    assert event.payload == ControllerData(controller=0x07, value=90)


@pytest.mark.parametrize(
    "payload, size",
    [
        ((0xC0, 5), 2),
        ((0xD1, 40), 2),
        ((0xA0, 60, 10), 3),
        ((0xE4, 0x00, 0x40), 3),
    ],
)
def test_unretained_channel_events_are_consumed(payload, size):
    stream = ByteStream.from_bytes(midi_event(3, *payload) + b"\xEE")
    event, consumed, tick = read_event(stream, 0)
    assert event is None
    assert consumed == 1 + size
    assert tick == 3
    assert stream.read_byte() == 0xEE


def test_data_byte_in_status_position_is_unknown():
    # A running-status stream: the second event omits its status byte.
    data = midi_event(0, 0x90, 60, 100) + midi_event(0, 62, 100)
    stream = ByteStream.from_bytes(data)
    read_event(stream, 0)
    with pytest.raises(UnknownEventTypeError) as excinfo:
        read_event(stream, 0)
    assert excinfo.value.offset == 4
    assert "0x3E" in str(excinfo.value)


@pytest.mark.parametrize("status", [0xF0, 0xF7])
def test_sysex_is_unsupported(status):
    with pytest.raises(UnsupportedSysExError):
        decode(midi_event(0, status, 0x01, 0x00))


def test_truncated_note_payload():
    with pytest.raises(TruncatedStreamError):
        decode(midi_event(0, 0x90, 60))


# ── meta ───────────────────────────────────────────────────────────


def test_tempo_meta():
    event, consumed, _ = decode(midi_event(0, 0xFF, 0x51, 0x03, 0x07, 0xA1, 0x20))
    assert consumed == 7
    assert event.kind is EventKind.TEMPO
    assert event.status == 0xFF
    assert event.payload == TempoData(500000)
    assert event.payload.bpm == pytest.approx(120.0)


def test_time_signature_meta():
    event, consumed, _ = decode(midi_event(0, 0xFF, 0x58, 0x04, 6, 3, 36, 8))
    assert consumed == 8
    assert event.kind is EventKind.TIME_SIGNATURE
    assert event.payload == TimeSignatureData(6, 3, 36, 8)
    assert event.payload.beat_unit == 8


def test_other_meta_events_are_skipped():
    name = b"Piano"
    stream = ByteStream.from_bytes(midi_event(5, 0xFF, 0x03, len(name), *name) + b"\x00")
    event, consumed, tick = read_event(stream, 0)
    assert event is None
    assert consumed == 4 + len(name)
    assert tick == 5
    assert stream.remaining() == 1


def test_end_of_track_is_dropped():
    event, consumed, _ = decode(midi_event(0, 0xFF, 0x2F, 0x00))
    assert event is None
    assert consumed == 4


def test_tempo_with_wrong_length_is_malformed():
    with pytest.raises(MalformedEventError):
        decode(midi_event(0, 0xFF, 0x51, 0x04, 0x00, 0x07, 0xA1, 0x20))


def test_time_signature_with_wrong_length_is_malformed():
    with pytest.raises(MalformedEventError):
        decode(midi_event(0, 0xFF, 0x58, 0x02, 4, 2))


def test_skipped_meta_past_end_is_truncated():
    with pytest.raises(TruncatedStreamError):
        decode(midi_event(0, 0xFF, 0x01, 0x10, 0x41))


# ── encoding ───────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "raw",
    [
        midi_event(0, 0x90, 60, 100),
        midi_event(200, 0x85, 61, 0),
        midi_event(0, 0xBF, 0x7B, 0),
        midi_event(7, 0xFF, 0x51, 0x03, 0x06, 0x1A, 0x80),
        midi_event(0, 0xFF, 0x58, 0x04, 3, 2, 24, 8),
    ],
)
def test_to_bytes_reproduces_input(raw):
    event, consumed, _ = decode(raw)
    assert consumed == len(raw)
    assert event.to_bytes() == raw


def test_tempo_helpers():
    tempo = TempoData(400000)
    assert tempo.seconds_per_quarter == pytest.approx(0.4)
    assert tempo.bpm == pytest.approx(150.0)
    assert tempo.seconds_per_tick(480) == pytest.approx(0.4 / 480)
    assert TempoData().microseconds_per_quarter == 500000


def test_constructed_event_encodes():
    event = TrackEvent(
        delta=Vlv.of(128),
        status=0x91,
        absolute_tick=128,
        kind=EventKind.NOTE,
        payload=NoteData(64, 80),
    )
    assert event.to_bytes() == b"\x81\x00\x91\x40\x50"
