"""
Listening Module Backend Router

This module provides the backend API endpoints for the listening practice exercises.
It handles:
- The CEFR-graded passage catalog, with levels above the learner's locked
- Sentence segmentation and the estimated timeline used for the scrub bar
- AI question generation for a passage
- AI performance analysis after answers are checked
- Saving completed attempts and reading them back for restoration

Playback itself runs on the client against its own speech engine; the server only
supplies the timeline that playback is driven by.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel, Field

from ..ai_service import ListeningAI
from ..answers import compute_score, split_by_correctness
from ..catalog import exercises_for, find_exercise, level_options, normalize_level
from ..db import SessionLocal
from ..errors import ActivityNotFound, AnalysisUnavailable, ExerciseNotFound, LevelLocked, QuestionGenerationError
from ..schemas import ActivityDraft, ActivityRecord, AIAnalysis, Exercise, Question
from ..segmenter import segment
from ..settings import settings
from ..store import ActivityStore
from ..timeline import estimate

# Initialize FastAPI router for listening endpoints
router = APIRouter(prefix="/listen", tags=["listening"])


# ============================================================================
# DEPENDENCIES
# ============================================================================

def get_store() -> ActivityStore:
    return ActivityStore(SessionLocal)


def get_ai() -> ListeningAI:
    return ListeningAI()


def get_username(x_username: Optional[str] = Header(default=None)) -> str:
    """
    Resolve the caller.

    Authentication is handled upstream; this router only needs a stable key to
    file activity records under.
    """
    return (x_username or "").strip() or "guest"


# ============================================================================
# REQUEST/RESPONSE MODELS
# ============================================================================

class QuestionsRequest(BaseModel):
    """
    Request model for generating questions.

    Attributes:
        exercise_id: Catalog id of the passage
        level: CEFR level to write the questions for (defaults to the passage's level)
    """
    exercise_id: str
    level: Optional[str] = None


class AttemptSnapshot(BaseModel):
    """
    A learner's answers to a question set.

    Attributes:
        exercise_id: Catalog id of the passage
        level: CEFR level the attempt was taken at
        questions: The question set exactly as shown to the learner
        answers: Mapping of question id to the selected option text
    """
    exercise_id: str
    level: Optional[str] = None
    questions: List[Question]
    answers: Dict[str, str] = Field(default_factory=dict)


class SaveActivityRequest(AttemptSnapshot):
    """
    Request model for saving a completed attempt.

    Attributes:
        ai_analysis: Analysis produced for this attempt, if any
        assignment_id: Assignment the attempt was done for, if any
    """
    ai_analysis: Optional[AIAnalysis] = None
    assignment_id: Optional[str] = None


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def _resolve(exercise_id: str, level: Optional[str]) -> tuple[str, Exercise]:
    """
    Find a catalog exercise and the level to use with it.

    Raises:
        HTTPException: 404 if the exercise or level does not exist
    """
    try:
        home_level, exercise = find_exercise(exercise_id)
    except ExerciseNotFound as err:
        raise HTTPException(status_code=404, detail=str(err))
    if level is None:
        return home_level, exercise
    lvl = normalize_level(level)
    if lvl is None:
        raise HTTPException(status_code=404, detail=f"Unknown CEFR level: {level}")
    return lvl, exercise


def _complete_answers(snapshot: AttemptSnapshot) -> None:
    if not snapshot.questions:
        raise HTTPException(status_code=400, detail="An attempt needs at least one question")
    known = {q.id: q for q in snapshot.questions}
    for qid, option in snapshot.answers.items():
        question = known.get(qid)
        if question is None:
            raise HTTPException(status_code=400, detail=f"Unknown question id: {qid}")
        if option not in question.options:
            raise HTTPException(status_code=400, detail=f"Invalid option for question {qid}")
    missing = [q.id for q in snapshot.questions if q.id not in snapshot.answers]
    if missing:
        raise HTTPException(status_code=400, detail=f"Unanswered questions: {', '.join(missing)}")


# ============================================================================
# CATALOG & TIMELINE
# ============================================================================

@router.get("/levels")
async def list_levels(learner_level: Optional[str] = None):
    """
    List the six CEFR levels.

    Levels above the learner's own level are returned with ``locked: true``
    rather than being left out.
    """
    return {"levels": level_options(learner_level)}


@router.get("/exercises")
async def list_exercises(level: str, learner_level: Optional[str] = None):
    """
    List catalog passages for a level.

    Raises:
        HTTPException: 404 for an unknown level, 403 if the level is locked
    """
    try:
        exercises = exercises_for(level, learner_level)
    except ExerciseNotFound as err:
        raise HTTPException(status_code=404, detail=str(err))
    except LevelLocked as err:
        raise HTTPException(status_code=403, detail=str(err))
    return {"level": normalize_level(level), "exercises": [e.model_dump() for e in exercises]}


@router.get("/exercises/{exercise_id}/timeline")
async def get_timeline(exercise_id: str, rate: float = 1.0):
    """
    Segment a passage and estimate when each sentence starts and ends.

    The response drives the client's scrub bar and sentence highlighting. Times are
    estimates from word counts; they are consistent with each other, not with any
    particular voice.
    """
    level, exercise = _resolve(exercise_id, None)
    sentences = segment(exercise.text)
    timeline = estimate(sentences, rate, settings.words_per_second)
    return {
        "exercise": exercise.model_dump(),
        "level": level,
        "rate": rate,
        "total_duration": timeline.total_duration,
        "sentences": [
            {
                "index": s.index,
                "text": s.text,
                "start": timeline.cumulative_start[s.index],
                "end": timeline.cumulative_end[s.index],
            }
            for s in sentences
        ],
    }


# ============================================================================
# AI CONTENT
# ============================================================================

@router.post("/questions")
async def generate_questions(req: QuestionsRequest, ai: ListeningAI = Depends(get_ai)):
    """
    Generate a multiple-choice question set for a catalog passage.

    Raises:
        HTTPException: 404 for an unknown passage, 502 if generation failed
    """
    level, exercise = _resolve(req.exercise_id, req.level)
    try:
        questions = await ai.generate_questions(exercise.text, level, exercise.question_count, exercise.title)
    except QuestionGenerationError as err:
        raise HTTPException(status_code=502, detail=str(err))
    return {"exercise_id": exercise.id, "level": level, "questions": [q.model_dump() for q in questions]}


@router.post("/analysis")
async def analyze(req: AttemptSnapshot, ai: ListeningAI = Depends(get_ai)):
    """
    Produce coaching feedback for an answered question set.

    Raises:
        HTTPException: 503 when no credential is configured or the call failed
    """
    level, exercise = _resolve(req.exercise_id, req.level)
    _complete_answers(req)
    score = compute_score(req.questions, req.answers)
    correct, incorrect = split_by_correctness(req.questions, req.answers)
    try:
        analysis = await ai.analyze_performance(
            exercise.text,
            level,
            [{"question": q.question, "answer": q.correct} for q in correct],
            [{"question": q.question, "correctAnswer": q.correct, "userAnswer": req.answers.get(q.id, "")} for q in incorrect],
            score.percent,
            title=exercise.title,
        )
    except AnalysisUnavailable as err:
        raise HTTPException(status_code=503, detail=str(err))
    return analysis.model_dump()


# ============================================================================
# ACTIVITY RECORDS
# ============================================================================

def _public(record: ActivityRecord) -> Dict[str, Any]:
    data = record.model_dump(mode="json")
    data["percent"] = record.percent
    return data


@router.post("/activities", status_code=201)
async def save_activity(
    req: SaveActivityRequest,
    store: ActivityStore = Depends(get_store),
    username: str = Depends(get_username),
):
    """
    Save a completed attempt.

    The score is recomputed here from the snapshot rather than trusted from the
    client. Saved records are never edited afterwards.
    """
    level, exercise = _resolve(req.exercise_id, req.level)
    _complete_answers(req)
    record = store.save(
        ActivityDraft(
            username=username,
            exercise_title=exercise.title,
            level=level,
            questions=req.questions,
            answers=req.answers,
            score=compute_score(req.questions, req.answers),
            ai_analysis=req.ai_analysis,
            assignment_id=req.assignment_id,
        )
    )
    return _public(record)


@router.get("/activities")
async def list_activities(store: ActivityStore = Depends(get_store), username: str = Depends(get_username)):
    """List the caller's saved listening attempts, newest first."""
    return {"activities": [_public(r) for r in store.list_by_type("listening", username)]}


@router.get("/activities/{activity_id}")
async def get_activity(
    activity_id: str,
    store: ActivityStore = Depends(get_store),
    username: str = Depends(get_username),
):
    """
    Fetch one saved attempt, with everything needed to restore it.

    Raises:
        HTTPException: 404 if no such record exists for the caller
    """
    try:
        record = store.require(activity_id, username)
    except ActivityNotFound as err:
        raise HTTPException(status_code=404, detail=str(err))
    return _public(record)
