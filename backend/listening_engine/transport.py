"""Play/pause/seek over an estimated timeline, one utterance per sentence.

The controller is the only writer of playback state. It chains sentences through the
engine's completion callback because a finished utterance is the only moment at which
the estimated clock can be resynchronised with what was actually spoken.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from .segmenter import Sentence, segment
from .speech import SpeechEngine, Utterance
from .timeline import BASE_WORDS_PER_SECOND, Timeline, clamp_rate, estimate

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class PlaybackStatus(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass(frozen=True)
class PlaybackState:
    status: PlaybackStatus
    current_sentence_index: int
    current_time: float


class TransportController:
    def __init__(
        self,
        engine: SpeechEngine,
        *,
        clock: Clock = time.monotonic,
        sampler_interval: float = 0.2,
        rate: float = 1.0,
        words_per_second: float = BASE_WORDS_PER_SECOND,
        voice_hint: str = "en-US",
    ) -> None:
        self._engine = engine
        self._clock = clock
        self._sampler_interval = sampler_interval
        self._rate = clamp_rate(rate)
        self._wps = words_per_second
        self.voice_hint = voice_hint

        self._sentences: List[Sentence] = []
        self._timeline = Timeline()
        self._status = PlaybackStatus.IDLE
        self._index = 0
        self._time = 0.0
        self._anchor = 0.0
        self.error: Optional[str] = None

        self._sampler: Optional[asyncio.Task] = None
        self._utterance: Optional[Utterance] = None
        # Bumped on every cancel; callbacks from older utterances are dropped
        self._utterance_seq = 0

    # -- read side ---------------------------------------------------------

    @property
    def available(self) -> bool:
        return bool(getattr(self._engine, "available", False))

    @property
    def sentences(self) -> List[Sentence]:
        return list(self._sentences)

    @property
    def timeline(self) -> Timeline:
        return self._timeline

    @property
    def rate(self) -> float:
        return self._rate

    @property
    def status(self) -> PlaybackStatus:
        return self._status

    @property
    def is_playing(self) -> bool:
        return self._status is PlaybackStatus.PLAYING

    @property
    def current_sentence_index(self) -> int:
        return self._index

    @property
    def current_time(self) -> float:
        return self._time

    @property
    def state(self) -> PlaybackState:
        return PlaybackState(self._status, self._index, self._time)

    # -- loading -----------------------------------------------------------

    def load(self, text: Optional[str]) -> None:
        """Swap in a new passage. Always a hard reset."""
        self._sentences = segment(text or "")
        self._timeline = estimate(self._sentences, self._rate, self._wps)
        self.hard_reset()

    def set_rate(self, rate: float) -> None:
        self._cancel_inflight()
        self._rate = clamp_rate(rate)
        self._timeline = estimate(self._sentences, self._rate, self._wps)
        if self._status is PlaybackStatus.PLAYING:
            self._status = PlaybackStatus.PAUSED
        self._index = min(self._index, max(0, len(self._sentences) - 1))
        self._time = self._timeline.start_of(self._index)

    # -- transport operations ---------------------------------------------

    def play(self) -> bool:
        if not self.available:
            logger.debug("play() ignored: no speech engine")
            return False
        if not self._sentences:
            return False
        self._cancel_inflight()
        if self._time >= self._timeline.total_duration:
            # Finished passage: start over
            self._index = 0
            self._time = 0.0
        base = self._timeline.start_of(self._index)
        self._anchor = self._clock() - (self._time - base)
        self._set_status(PlaybackStatus.PLAYING)
        self.error = None
        self._start_sampler()
        self._speak(self._index)
        return True

    def replay_sentence(self, index: int) -> bool:
        """Speak a single sentence from its start, then stop."""
        if not self.available or not 0 <= index < len(self._sentences):
            return False
        self._cancel_inflight()
        self._index = index
        self._time = self._timeline.start_of(index)
        self._anchor = self._clock()
        self._set_status(PlaybackStatus.PLAYING)
        self.error = None
        self._start_sampler()
        self._speak(index, only_one=True)
        return True

    def pause(self) -> None:
        if self._status is not PlaybackStatus.PLAYING:
            return
        self.sample()
        self._cancel_inflight()
        self._set_status(PlaybackStatus.PAUSED)

    def seek(self, t: float) -> int:
        """Move the cursor to ``t`` seconds. Never resumes playback on its own."""
        self._cancel_inflight()
        t = self._timeline.clamp(t)
        self._index = self._timeline.index_at(t)
        self._time = t
        if self._status is PlaybackStatus.PLAYING:
            self._set_status(PlaybackStatus.PAUSED)
        return self._index

    def rewind(self) -> None:
        self.hard_reset()

    def hard_reset(self) -> None:
        self._cancel_inflight()
        self._set_status(PlaybackStatus.IDLE)
        self._index = 0
        self._time = 0.0
        self.error = None

    def close(self) -> None:
        self.hard_reset()

    def sample(self) -> float:
        """Recompute the cursor from the wall clock; what the periodic sampler runs."""
        if self._status is PlaybackStatus.PLAYING:
            start = self._timeline.start_of(self._index)
            end = self._timeline.end_of(self._index)
            self._time = min(start + (self._clock() - self._anchor), end)
        return self._time

    # -- internals ---------------------------------------------------------

    def _set_status(self, status: PlaybackStatus) -> None:
        if status is not self._status:
            logger.debug("transport %s -> %s", self._status.value, status.value)
        self._status = status

    def _speak(self, index: int, only_one: bool = False) -> None:
        self._utterance_seq += 1
        seq = self._utterance_seq
        try:
            utterance = self._engine.speak(
                self._sentences[index].text,
                self.voice_hint,
                self._rate,
                on_complete=lambda: self._on_complete(seq, index, only_one),
                on_error=lambda message: self._on_error(seq, message),
            )
        except Exception as err:
            self._on_error(seq, str(err) or type(err).__name__)
            return
        # The engine may already have completed synchronously and moved us on
        if seq == self._utterance_seq:
            self._utterance = utterance

    def _on_complete(self, seq: int, index: int, only_one: bool) -> None:
        if seq != self._utterance_seq or self._status is not PlaybackStatus.PLAYING:
            return
        self._utterance = None
        self._time = self._timeline.end_of(index)
        if only_one or index + 1 >= len(self._sentences):
            self._stop_sampler()
            self._set_status(PlaybackStatus.IDLE)
            return
        self._index = index + 1
        self._anchor = self._clock()
        self._speak(index + 1)

    def _on_error(self, seq: int, message: str) -> None:
        if seq != self._utterance_seq or self._status is not PlaybackStatus.PLAYING:
            return
        logger.warning("Speech engine error on sentence %d: %s", self._index, message)
        self._utterance = None
        self._utterance_seq += 1
        self._stop_sampler()
        self._set_status(PlaybackStatus.IDLE)
        self.error = message or "playback failed"

    def _cancel_inflight(self) -> None:
        self._utterance_seq += 1
        self._stop_sampler()
        if self._utterance is not None:
            self._utterance.cancel()
            self._utterance = None
        self._engine.cancel()

    def _start_sampler(self) -> None:
        self._stop_sampler()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop: the cursor only moves on utterance boundaries and explicit sample()
            return
        self._sampler = loop.create_task(self._run_sampler())

    def _stop_sampler(self) -> None:
        if self._sampler is not None:
            self._sampler.cancel()
            self._sampler = None

    async def _run_sampler(self) -> None:
        while True:
            await asyncio.sleep(self._sampler_interval)
            self.sample()
