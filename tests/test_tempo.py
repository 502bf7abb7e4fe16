import pytest

from midify.events import EventKind, NoteData, TempoData, TrackEvent
from midify.records import Vlv
from midify.tempo import DEFAULT_TEMPO, TempoMap, samples_per_tick


def test_default_tempo_at_480_ticks():
    assert samples_per_tick(480, DEFAULT_TEMPO, 44100) == 46


def test_default_tempo_at_96_ticks():
    assert samples_per_tick(96, DEFAULT_TEMPO, 44100) == 230


def test_rounds_half_to_even():
    assert samples_per_tick(2, DEFAULT_TEMPO, 10) == 2
    assert samples_per_tick(2, DEFAULT_TEMPO, 14) == 4


def test_rejects_non_positive_division():
    with pytest.raises(ValueError):
        samples_per_tick(0, DEFAULT_TEMPO, 44100)


def test_map_starts_at_default_tempo():
    tempo = TempoMap(480)
    assert tempo.tempo == TempoData(500000)
    assert tempo.samples_per_tick == 46


def test_update_from_event_and_payload():
    tempo = TempoMap(480)
    event = TrackEvent(
        delta=Vlv.of(0),
        status=0xFF,
        absolute_tick=0,
        kind=EventKind.TEMPO,
        payload=TempoData(250000),
    )
    tempo.update(event)
    assert tempo.samples_per_tick == 23
    tempo.update(TempoData(1000000))
    assert tempo.samples_per_tick == 92


def test_update_rejects_other_events():
    event = TrackEvent(
        delta=Vlv.of(0),
        status=0x90,
        absolute_tick=0,
        kind=EventKind.NOTE,
        payload=NoteData(60, 100),
    )
    with pytest.raises(TypeError):
        TempoMap(480).update(event)


def test_silence_is_one_tick_long_by_default():
    tempo = TempoMap(4, sample_rate=8)
    assert tempo.samples_per_tick == 1
    assert len(tempo.silence()) == 1
    frames = tempo.silence(3)
    assert len(frames) == 3
    assert all(f.is_silent for f in frames)
    assert frames[0] is not frames[1]
