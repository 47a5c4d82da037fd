"""Question set for the selected exercise, fetched independently of playback."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from .schemas import Exercise, Question

logger = logging.getLogger(__name__)

QuestionFetcher = Callable[[str, str, int, str], Awaitable[List[Question]]]

GENERATION_FAILED_MESSAGE = "AI questions could not be generated. Please check your API key or try again."


class QuestionProvider:
    """Owns the question set.

    Each fetch captures a generation number; a result that comes back after the
    selection moved on (or after ``clear``/``replace``) is discarded instead of
    written. ``retry_token`` only ever increases and each accepted retry starts
    exactly one fetch.
    """

    def __init__(
        self,
        fetcher: QuestionFetcher,
        *,
        on_loaded: Optional[Callable[[List[Question]], None]] = None,
    ) -> None:
        self._fetch = fetcher
        self._on_loaded = on_loaded
        self.questions: Optional[List[Question]] = None
        self.loading = False
        self.error: Optional[str] = None
        self.retry_token = 0
        self._generation = 0
        self._exercise: Optional[Exercise] = None
        self._level: Optional[str] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def can_retry(self) -> bool:
        return self.error is not None and not self.loading and self._exercise is not None

    def load(self, exercise: Exercise, level: str) -> asyncio.Task:
        self._exercise = exercise
        self._level = level
        return self._start()

    def retry(self) -> Optional[asyncio.Task]:
        if self.loading or self._exercise is None:
            # Already fetching: extra presses collapse into the fetch in flight
            return None
        self.retry_token += 1
        logger.info("Retrying question generation (token %d)", self.retry_token)
        return self._start()

    def clear(self) -> None:
        self._generation += 1
        self._exercise = None
        self._level = None
        self.questions = None
        self.error = None
        self.loading = False

    def replace(
        self,
        questions: List[Question],
        *,
        exercise: Optional[Exercise] = None,
        level: Optional[str] = None,
    ) -> None:
        """Install a known question set without fetching; used when restoring an attempt.

        ``exercise`` and ``level`` become what a later retry fetches for.
        """
        self._generation += 1
        self._exercise = exercise
        self._level = level
        self.questions = list(questions)
        self.error = None
        self.loading = False

    def _start(self) -> asyncio.Task:
        self._generation += 1
        generation = self._generation
        exercise, level = self._exercise, self._level
        self.loading = True
        self.error = None
        self._task = asyncio.get_running_loop().create_task(self._run(generation, exercise, level))
        return self._task

    async def _run(self, generation: int, exercise: Exercise, level: str) -> None:
        logger.info("Generating %d questions for %r (%s)", exercise.question_count, exercise.title, level)
        try:
            questions = await self._fetch(exercise.text, level, exercise.question_count, exercise.title)
        except Exception as err:
            if generation != self._generation:
                return
            logger.warning("Question generation failed for %r: %s", exercise.title, err)
            self.questions = []
            self.error = GENERATION_FAILED_MESSAGE
            self.loading = False
            return
        if generation != self._generation:
            logger.debug("Discarding stale question set for %r", exercise.title)
            return
        self.questions = list(questions)
        self.loading = False
        if self._on_loaded is not None:
            self._on_loaded(self.questions)
