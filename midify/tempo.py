from __future__ import annotations

from typing import List, Optional

from .events import DEFAULT_MICROSECONDS_PER_QUARTER, TempoData, TrackEvent
from .wave import Sample, TARGET_SAMPLE_RATE

DEFAULT_TEMPO = DEFAULT_MICROSECONDS_PER_QUARTER


def samples_per_tick(division: int, microseconds_per_quarter: int, sample_rate: int) -> int:
    """Audio frames covered by one MIDI tick, rounded half to even."""

    if division <= 0:
        raise ValueError(f"division must be positive, got {division}")
    return round(sample_rate * (microseconds_per_quarter / 1_000_000) / division)


class TempoMap:
    """Current tempo of a render pass expressed as frames per tick."""

    def __init__(self, division: int, sample_rate: int = TARGET_SAMPLE_RATE) -> None:
        self.division = division
        self.sample_rate = sample_rate
        self.tempo = TempoData()
        self.samples_per_tick = 0
        self._recompute()

    def update(self, tempo: TrackEvent | TempoData) -> None:
        if isinstance(tempo, TrackEvent):
            tempo = tempo.payload  # type: ignore[assignment]
        if not isinstance(tempo, TempoData):
            raise TypeError(f"expected a tempo event, got {type(tempo).__name__}")
        self.tempo = tempo
        self._recompute()

    def _recompute(self) -> None:
        self.samples_per_tick = samples_per_tick(
            self.division, self.tempo.microseconds_per_quarter, self.sample_rate
        )

    def silence(self, count: Optional[int] = None) -> List[Sample]:
        """A run of silent frames, one tick long unless ``count`` is given."""

        if count is None:
            count = self.samples_per_tick
        return [Sample.silent() for _ in range(count)]
