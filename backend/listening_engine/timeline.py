"""Estimated timeline for a passage spoken one sentence at a time.

The speech engine reports neither duration nor position, so each sentence is given a
duration from its word count. The numbers only need to be self-consistent: sentence
boundaries here are the same boundaries the transport uses when an utterance completes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence, Tuple

from .segmenter import Sentence

BASE_WORDS_PER_SECOND = 2.5
MIN_RATE = 0.25
MAX_RATE = 2.0


def clamp_rate(rate: float) -> float:
    return max(MIN_RATE, min(MAX_RATE, rate))


@dataclass(frozen=True)
class Timeline:
    total_duration: float = 0.0
    cumulative_start: Tuple[float, ...] = field(default_factory=tuple)
    cumulative_end: Tuple[float, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.cumulative_end)

    def clamp(self, t: float) -> float:
        return max(0.0, min(self.total_duration, t))

    def start_of(self, index: int) -> float:
        if 0 <= index < len(self.cumulative_start):
            return self.cumulative_start[index]
        return 0.0

    def end_of(self, index: int) -> float:
        if 0 <= index < len(self.cumulative_end):
            return self.cumulative_end[index]
        return self.total_duration

    def index_at(self, t: float) -> int:
        """Sentence playing at time ``t``: the first whose end lies after it, else the last."""
        if not self.cumulative_end:
            return 0
        t = self.clamp(t)
        for i, end in enumerate(self.cumulative_end):
            if t < end:
                return i
        return len(self.cumulative_end) - 1


def estimate(
    sentences: Sequence[Sentence],
    rate: float = 1.0,
    words_per_second: float = BASE_WORDS_PER_SECOND,
) -> Timeline:
    if not sentences:
        return Timeline()
    wps = words_per_second * clamp_rate(rate)
    starts = [0.0]
    for sentence in sentences:
        # Floor at one word so no sentence has zero length
        starts.append(starts[-1] + max(1, sentence.word_count) / wps)
    ends = tuple(starts[1:])
    return Timeline(
        total_duration=ends[-1],
        cumulative_start=tuple(starts[:-1]),
        cumulative_end=ends,
    )
