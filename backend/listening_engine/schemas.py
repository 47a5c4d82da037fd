"""pydantic models shared by the engine, the store and the HTTP layer."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Exercise(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    text: str
    question_count: int = 10


class Question(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    question: str
    options: List[str]
    correct: str


class Score(BaseModel):
    model_config = ConfigDict(frozen=True)

    correct_count: int = 0
    total: int = 0

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        # Half-up rounding, so 12.5% reports as 13
        return int(math.floor(self.correct_count * 100 / self.total + 0.5))


class AIAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    summary: str
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    strategy_tips: List[str] = Field(default_factory=list)


class ActivityDraft(BaseModel):
    """Everything needed to create an ActivityRecord; the store assigns id and timestamp."""

    model_config = ConfigDict(frozen=True)

    username: str = "guest"
    exercise_title: str
    level: str
    questions: List[Question]
    answers: Dict[str, str]
    score: Score
    ai_analysis: Optional[AIAnalysis] = None
    assignment_id: Optional[str] = None


class ActivityRecord(ActivityDraft):
    id: str
    activity_type: str = "listening"
    created_at: datetime

    @property
    def percent(self) -> int:
        return self.score.percent
