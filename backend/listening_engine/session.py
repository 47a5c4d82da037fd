"""One learner's listening exercise: selection, playback, questions, scoring, restore.

Every piece of state here has one owner. The session only wires them together and
runs the reset hooks that fire when the level or exercise changes. Those hooks are
independent of each other and all of them check the restore guard, so a bulk load of
a saved attempt is not undone by the resets that the same selection change would
normally trigger.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional

from .ai_service import ListeningAI
from .answers import AnswerStateManager, split_by_correctness
from .catalog import find_by_title, get_exercise, initial_level, is_locked, normalize_level
from .errors import AnalysisUnavailable, ExerciseNotFound, LevelLocked
from .questions import QuestionProvider
from .schemas import ActivityDraft, ActivityRecord, AIAnalysis, Exercise, Question, Score
from .settings import Settings, settings as default_settings
from .speech import SpeechEngine
from .store import ActivityStore
from .transport import Clock, TransportController

logger = logging.getLogger(__name__)


class ListeningSession:
    def __init__(
        self,
        *,
        engine: SpeechEngine,
        ai: ListeningAI,
        store: ActivityStore,
        username: str = "guest",
        learner_level: Optional[str] = None,
        clock: Clock = time.monotonic,
        config: Optional[Settings] = None,
    ) -> None:
        cfg = config or default_settings
        self.ai = ai
        self.store = store
        self.username = username
        self.learner_level = normalize_level(learner_level)
        self.level = initial_level(learner_level, cfg.default_level)
        self.exercise: Optional[Exercise] = None

        self.transport = TransportController(
            engine,
            clock=clock,
            sampler_interval=cfg.sampler_interval_seconds,
            rate=cfg.speech_rate,
            words_per_second=cfg.words_per_second,
            voice_hint=cfg.voice_hint,
        )
        self.questions = QuestionProvider(ai.generate_questions, on_loaded=self._on_questions_loaded)
        self.answers = AnswerStateManager()

        self.ai_analysis: Optional[AIAnalysis] = None
        self.analysis_error: Optional[str] = None
        self.analysis_loading = False
        self.tips: Dict[str, str] = {}
        self.last_record: Optional[ActivityRecord] = None

        self._restoring = False
        self._restored_exercise_id: Optional[str] = None
        self._activity_id: Optional[str] = None
        # Bumped whenever attempt state is reset; late analysis results check it
        self._attempt = 0

    # -- derived -----------------------------------------------------------

    @property
    def restoring(self) -> bool:
        return self._restoring

    @property
    def question_list(self) -> List[Question]:
        return self.questions.questions or []

    @property
    def score(self) -> Score:
        return self.answers.score

    @property
    def can_submit(self) -> bool:
        return self.exercise is not None and self.answers.can_submit

    # -- selection ---------------------------------------------------------

    def select_level(self, level: str) -> None:
        lvl = normalize_level(level)
        if lvl is None:
            raise ExerciseNotFound(f"Unknown CEFR level: {level}")
        if is_locked(lvl, self.learner_level):
            raise LevelLocked(f"Level {lvl} is locked for learner level {self.learner_level}")
        if lvl == self.level:
            return
        self.level = lvl
        self._on_level_changed()

    def select_exercise(self, exercise_id: str) -> Exercise:
        exercise = get_exercise(self.level, exercise_id)
        if self.exercise is None or self.exercise.id != exercise.id:
            self.exercise = exercise
            self._on_exercise_changed()
        return exercise

    def back_to_catalog(self) -> None:
        if self.exercise is None:
            return
        self.exercise = None
        self._on_exercise_changed()

    # -- reset hooks -------------------------------------------------------

    def _on_level_changed(self) -> None:
        if self._restoring:
            return
        if self.exercise is not None:
            self.exercise = None
            self._on_exercise_changed()

    def _on_exercise_changed(self) -> None:
        self._reset_playback()
        self._reset_attempt()
        self._refresh_questions()

    def _is_restored_selection(self) -> bool:
        return self.exercise is not None and self._restored_exercise_id == self.exercise.id

    def _reset_playback(self) -> None:
        # Sentences always follow the selected exercise; only the cursor is reset
        self.transport.load(self.exercise.text if self.exercise else None)

    def _reset_attempt(self) -> None:
        if self._restoring or self._is_restored_selection():
            return
        self._clear_attempt()

    def _clear_attempt(self) -> None:
        # A new attempt number makes any analysis or tips still in flight land nowhere
        self._attempt += 1
        self.answers.clear()
        self.ai_analysis = None
        self.analysis_error = None
        self.analysis_loading = False
        self.tips = {}

    def _refresh_questions(self) -> None:
        if self._restoring:
            return
        if self._is_restored_selection() and self.answers.submitted and self.question_list:
            return
        self._restored_exercise_id = None
        if self.exercise is None:
            self.questions.clear()
            self.answers.set_questions([])
            return
        self.questions.load(self.exercise, self.level)

    def _on_questions_loaded(self, questions: List[Question]) -> None:
        self.answers.set_questions(questions)
        self.answers.clear()

    # -- learner actions ---------------------------------------------------

    def retry_questions(self):
        """Fetch a new question set after a failed one. Does nothing otherwise."""
        if not self.questions.can_retry:
            return None
        return self.questions.retry()

    def select_answer(self, question_id: str, option: str) -> bool:
        return self.answers.select(question_id, option)

    def clear_answers(self) -> None:
        self.answers.clear()

    def reset(self) -> None:
        """Rewind playback and start the attempt over with the same questions."""
        self.transport.rewind()
        self._clear_attempt()

    async def check_answers(self, assignment_id: Optional[str] = None) -> Optional[ActivityRecord]:
        """Submit, analyse and persist the attempt. Returns None when nothing was saved.

        The submitted flag is set before the first await, so a second call while the
        analysis is still running does not save a second record.
        """
        if self.exercise is None:
            return None
        score = self.answers.submit()
        if score is None:
            return None

        attempt = self._attempt
        exercise, level = self.exercise, self.level
        questions = self.answers.questions
        answers = self.answers.answers

        analysis = await self._analyze(exercise, level, questions, answers, score, attempt)
        try:
            record = self.store.save(
                ActivityDraft(
                    username=self.username,
                    exercise_title=exercise.title,
                    level=level,
                    questions=questions,
                    answers=answers,
                    score=score,
                    ai_analysis=analysis,
                    assignment_id=assignment_id,
                )
            )
        except Exception:
            logger.exception("Saving listening attempt for %r failed", exercise.title)
            # Nothing was stored, so the same answers can be checked again
            if attempt == self._attempt:
                self.answers.submitted = False
            raise
        if attempt == self._attempt:
            self.last_record = record
            await self._load_tips(exercise, questions, answers, attempt)
        return record

    async def _analyze(self, exercise, level, questions, answers, score, attempt) -> Optional[AIAnalysis]:
        correct, incorrect = split_by_correctness(questions, answers)
        self.analysis_loading = True
        self.analysis_error = None
        try:
            analysis = await self.ai.analyze_performance(
                exercise.text,
                level,
                [{"question": q.question, "answer": q.correct} for q in correct],
                [
                    {"question": q.question, "correctAnswer": q.correct, "userAnswer": answers.get(q.id, "")}
                    for q in incorrect
                ],
                score.percent,
                title=exercise.title,
            )
        except AnalysisUnavailable as err:
            logger.warning("Listening analysis unavailable: %s", err)
            if attempt == self._attempt:
                self.analysis_error = str(err)
                self.analysis_loading = False
            return None
        if attempt == self._attempt:
            self.ai_analysis = analysis
            self.analysis_loading = False
        return analysis

    async def _load_tips(self, exercise, questions, answers, attempt) -> None:
        _, incorrect = split_by_correctness(questions, answers)
        tips = await self.ai.generate_tips(exercise.text, [(q, answers.get(q.id, "")) for q in incorrect])
        if attempt == self._attempt:
            self.tips = tips

    # -- restoration -------------------------------------------------------

    def open_activity(self, activity_id: Optional[str]) -> bool:
        """Show a saved attempt, or with ``None`` return to a fresh exercise view.

        Restoration runs once per activity id; asking again for the id already
        shown does nothing. Returns True when a record was restored.
        """
        if activity_id == self._activity_id:
            return False
        self._activity_id = activity_id
        if activity_id is None:
            if not self._restoring:
                self._clear_attempt()
                self._restored_exercise_id = None
                self.back_to_catalog()
            return False
        return self._restore(activity_id)

    def _restore(self, activity_id: str) -> bool:
        record = self.store.get(activity_id)
        if record is None or record.activity_type != "listening":
            logger.warning("Activity %s not found; showing a fresh exercise", activity_id)
            return False

        logger.info("Restoring listening activity %s (%s)", record.id, record.exercise_title)
        self._restoring = True
        try:
            found = find_by_title(record.exercise_title)
            self._attempt += 1
            # Retries target the restored passage from here on
            self.questions.replace(
                record.questions,
                exercise=found[1] if found else None,
                level=found[0] if found else None,
            )
            self.answers.load(record.questions, record.answers, submitted=True)
            self.ai_analysis = record.ai_analysis
            self.analysis_error = None
            self.analysis_loading = False
            self.tips = {}
            self.last_record = record

            if found is not None:
                level, exercise = found
                self._restored_exercise_id = exercise.id
                if level != self.level:
                    self.level = level
                    self._on_level_changed()
                if self.exercise is None or self.exercise.id != exercise.id:
                    self.exercise = exercise
                    self._on_exercise_changed()
                else:
                    self.transport.hard_reset()
        finally:
            self._restoring = False
        return True

    def close(self) -> None:
        """Unmount: stop speech and drop any pending fetch."""
        self.transport.close()
        self.questions.clear()
