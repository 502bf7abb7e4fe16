"""Render a MIDI track into audio by replaying it tick by tick.

Every note-on mixes one copy of the clip into the output at the sample
offset of its tick.  A note event for a (channel, pitch) that is already
sounding closes it instead, so note-off and velocity-0 note-on behave the
same.  Controller 0x7B (all notes off) closes every open note.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .byteconv import trunc_div
from .errors import UnsupportedFeatureError
from .events import ControllerType, EventKind, MidiEventType, TrackEvent
from .midi import TrackChunk
from .tempo import TempoMap
from .wave import (
    MIN_WAVE_SIZE,
    TARGET_BITS,
    TARGET_BLOCK_ALIGN,
    TARGET_SAMPLE_RATE,
    FormatChunk,
    Sample,
    Wave,
)

logger = logging.getLogger(__name__)

CHANNELS = 16
PITCHES = 128
_NOTE_TYPES = (MidiEventType.NOTE_ON, MidiEventType.NOTE_OFF)


class OpenNotes:
    """Sounding notes indexed by channel and pitch."""

    def __init__(self) -> None:
        self._table: List[List[Optional[TrackEvent]]] = [
            [None] * PITCHES for _ in range(CHANNELS)
        ]

    def __len__(self) -> int:
        return sum(1 for row in self._table for event in row if event is not None)

    def _slot(self, event: TrackEvent) -> tuple[int, int]:
        channel = event.channel
        pitch = event.payload.pitch  # type: ignore[union-attr]
        if not 0 <= channel < CHANNELS or not 0 <= pitch < PITCHES:
            raise IndexError(f"note channel {channel} / pitch {pitch} out of range")
        return channel, pitch

    def is_open(self, channel: int, pitch: int) -> bool:
        return self._table[channel][pitch] is not None

    def toggle(self, event: TrackEvent) -> bool:
        """Open the note, or close it if already open; True when it opened."""

        channel, pitch = self._slot(event)
        if self._table[channel][pitch] is not None:
            self._table[channel][pitch] = None
            return False
        self._table[channel][pitch] = event
        return True

    def clear(self) -> None:
        for row in self._table:
            for pitch in range(PITCHES):
                row[pitch] = None


def mix_values(existing: int, incoming: int) -> int:
    return trunc_div(existing, 2) + trunc_div(incoming, 2)


def append_or_combine(samples: List[Sample], incoming: Sequence[Sample], offset: int) -> None:
    """Mix ``incoming`` into ``samples`` starting at ``offset``.

    Frames that overlap existing output become the average of both (each half
    truncated toward zero); frames past the end are appended.
    """

    for i, sample in enumerate(incoming):
        index = offset + i
        if index < len(samples):
            current = samples[index]
            samples[index] = Sample.from_values(
                mix_values(current.left_value, sample.left_value),
                mix_values(current.right_value, sample.right_value),
            )
        else:
            samples.append(Sample(left=sample.left, right=sample.right))


def _pad_to(samples: List[Sample], length: int, tempo: TempoMap) -> None:
    missing = length - len(samples)
    if missing > 0:
        samples.extend(tempo.silence(missing))


def render_track(
    track: TrackChunk,
    clip: Wave,
    tempo_changes: Sequence[TrackEvent],
    division: int,
    *,
    sample_rate: int = TARGET_SAMPLE_RATE,
) -> Wave:
    """Render ``track`` using ``clip`` (16-bit) as the sound of every note."""

    if clip.format.bits != TARGET_BITS:
        raise UnsupportedFeatureError(
            f"clip must be normalized to 16-bit PCM, got {clip.format.bits}-bit"
        )

    tempo = TempoMap(division, sample_rate)
    tempos = list(tempo_changes)
    events = list(track.events)
    next_tempo = 0
    next_event = 0
    notes = OpenNotes()
    samples: List[Sample] = []
    offset = 0
    triggered = 0

    for tick in range(track.tick_size):
        while next_tempo < len(tempos) and tempos[next_tempo].absolute_tick == tick:
            tempo.update(tempos[next_tempo])
            next_tempo += 1

        while next_event < len(events) and events[next_event].absolute_tick == tick:
            event = events[next_event]
            next_event += 1
            if event.kind is EventKind.NOTE and event.event_type in _NOTE_TYPES:
                if notes.toggle(event):
                    append_or_combine(samples, clip.data.samples, offset)
                    triggered += 1
            elif (
                event.kind is EventKind.CONTROLLER
                and event.payload.controller == ControllerType.NOTES_OFF  # type: ignore[union-attr]
            ):
                notes.clear()

        _pad_to(samples, offset + tempo.samples_per_tick, tempo)
        offset += tempo.samples_per_tick

    out = Wave.blank()
    out.format = FormatChunk.build(sample_rate=sample_rate)
    out.data.samples = samples
    out.data.size = len(samples) * TARGET_BLOCK_ALIGN
    out.header.file_size = out.data.size + MIN_WAVE_SIZE
    logger.info(
        "rendered %d tick(s), %d note(s) into %d frame(s)",
        track.tick_size,
        triggered,
        len(samples),
    )
    return out
