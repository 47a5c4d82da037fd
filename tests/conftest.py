import asyncio
from typing import Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from listening_engine import models  # noqa: F401  (registers tables)
from listening_engine.db import Base
from listening_engine.errors import AnalysisUnavailable, QuestionGenerationError
from listening_engine.schemas import AIAnalysis, Question
from listening_engine.store import ActivityStore


class FakeUtterance:
    def __init__(self, text, rate, on_complete, on_error):
        self.text = text
        self.rate = rate
        self.on_complete = on_complete
        self.on_error = on_error
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeSpeechEngine:
    """Speaks nothing; tests fire completion and error events by hand."""

    def __init__(self, available=True):
        self.available = available
        self.spoken: List[FakeUtterance] = []
        self.cancel_calls = 0

    def speak(self, text, voice_hint, rate, *, on_complete, on_error):
        utterance = FakeUtterance(text, rate, on_complete, on_error)
        self.spoken.append(utterance)
        return utterance

    def cancel(self):
        self.cancel_calls += 1

    @property
    def last(self) -> FakeUtterance:
        return self.spoken[-1]

    def finish(self):
        self.last.on_complete()

    def fail(self, message="synthesis-failed"):
        self.last.on_error(message)

    def finish_all(self, limit=100):
        for _ in range(limit):
            before = len(self.spoken)
            self.finish()
            if len(self.spoken) == before:
                return


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeAI:
    """Scripted stand-in for ListeningAI."""

    def __init__(self, questions: Optional[List[Question]] = None):
        self.questions = questions or []
        self.manual = False
        self.fail_questions = False
        self.question_calls: List[tuple] = []
        self.question_futures: List[asyncio.Future] = []
        self.analysis: Optional[AIAnalysis] = AIAnalysis(
            summary="Good listening.",
            strengths=["Caught the main idea"],
            improvements=["Listen for numbers"],
            strategy_tips=["Predict before you listen"],
        )
        self.analysis_calls: List[tuple] = []
        # When set, analysis waits on this future before answering
        self.analysis_gate: Optional[asyncio.Future] = None
        self.tips: Dict[str, str] = {}
        self.tip_calls: List[tuple] = []

    async def generate_questions(self, passage, level, count, title):
        self.question_calls.append((passage, level, count, title))
        if self.manual:
            fut = asyncio.get_running_loop().create_future()
            self.question_futures.append(fut)
            return await fut
        if self.fail_questions:
            raise QuestionGenerationError()
        return list(self.questions)

    async def analyze_performance(self, passage, level, correct, incorrect, percent, *, title=""):
        self.analysis_calls.append((passage, level, list(correct), list(incorrect), percent, title))
        if self.analysis_gate is not None:
            await self.analysis_gate
        if self.analysis is None:
            raise AnalysisUnavailable("AI analysis is not available because no API key is configured.")
        return self.analysis

    async def generate_tips(self, passage, mistakes):
        self.tip_calls.append((passage, list(mistakes)))
        return {q.id: self.tips.get(q.id, "Listen again.") for q, _ in mistakes}


def make_questions(n=5) -> List[Question]:
    return [
        Question(
            id=f"q{i}",
            question=f"Question {i}?",
            options=[f"q{i}-a", f"q{i}-b", f"q{i}-c", f"q{i}-d"],
            correct=f"q{i}-a",
        )
        for i in range(1, n + 1)
    ]


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return ActivityStore(session_factory)


@pytest.fixture
def engine():
    return FakeSpeechEngine()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def questions():
    return make_questions()


@pytest.fixture
def fake_ai(questions):
    return FakeAI(questions)
