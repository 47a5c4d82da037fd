"""Per-question selections, submission and scoring."""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .schemas import Question, Score


def compute_score(questions: Sequence[Question], answers: Mapping[str, str]) -> Score:
    correct = sum(1 for q in questions if answers.get(q.id) == q.correct)
    return Score(correct_count=correct, total=len(questions))


def split_by_correctness(
    questions: Sequence[Question], answers: Mapping[str, str]
) -> Tuple[List[Question], List[Question]]:
    correct = [q for q in questions if answers.get(q.id) == q.correct]
    incorrect = [q for q in questions if answers.get(q.id) != q.correct]
    return correct, incorrect


class AnswerStateManager:
    def __init__(self) -> None:
        self._questions: List[Question] = []
        self._answers: Dict[str, str] = {}
        self.submitted = False

    @property
    def questions(self) -> List[Question]:
        return list(self._questions)

    @property
    def answers(self) -> Dict[str, str]:
        return dict(self._answers)

    @property
    def score(self) -> Score:
        return compute_score(self._questions, self._answers)

    @property
    def all_answered(self) -> bool:
        return all(self._answers.get(q.id) is not None for q in self._questions)

    @property
    def can_submit(self) -> bool:
        # An empty question set can never be submitted
        return not self.submitted and bool(self._questions) and self.all_answered

    def set_questions(self, questions: Sequence[Question]) -> None:
        self._questions = list(questions)

    def select(self, question_id: str, option: str) -> bool:
        if self.submitted:
            return False
        question = next((q for q in self._questions if q.id == question_id), None)
        if question is None:
            raise KeyError(f"Unknown question id: {question_id}")
        if option not in question.options:
            raise ValueError(f"{option!r} is not an option for question {question_id}")
        self._answers[question_id] = option
        return True

    def clear(self) -> None:
        self._answers = {}
        self.submitted = False

    def submit(self) -> Optional[Score]:
        """Freeze the answers and return the score; None if already submitted or incomplete."""
        if not self.can_submit:
            return None
        self.submitted = True
        return self.score

    def load(self, questions: Sequence[Question], answers: Mapping[str, str], *, submitted: bool = True) -> None:
        self._questions = list(questions)
        self._answers = dict(answers)
        self.submitted = submitted
