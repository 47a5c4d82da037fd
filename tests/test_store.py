from datetime import datetime, timezone

import pytest

from listening_engine.errors import ActivityNotFound
from listening_engine.schemas import ActivityDraft, AIAnalysis, Score


def _draft(questions, username="guest", title="My Family", analysis=None):
    answers = {q.id: q.correct for q in questions}
    answers["q5"] = "q5-d"
    return ActivityDraft(
        username=username,
        exercise_title=title,
        level="A1",
        questions=questions,
        answers=answers,
        score=Score(correct_count=4, total=5),
        ai_analysis=analysis,
    )


def test_save_then_get_returns_the_same_attempt(store, questions):
    analysis = AIAnalysis(summary="Solid.", strengths=["gist"], improvements=[], strategy_tips=["predict"])
    saved = store.save(_draft(questions, analysis=analysis))
    loaded = store.get(saved.id)

    assert loaded.id == saved.id
    assert loaded.activity_type == "listening"
    assert loaded.questions == questions
    assert loaded.answers["q5"] == "q5-d"
    assert loaded.score == Score(correct_count=4, total=5)
    assert loaded.percent == 80
    assert loaded.ai_analysis == analysis


def test_get_unknown_id(store):
    assert store.get("missing") is None
    with pytest.raises(ActivityNotFound):
        store.require("missing")


def test_require_checks_owner(store, questions):
    saved = store.save(_draft(questions, username="ana"))
    assert store.require(saved.id, "ana").id == saved.id
    with pytest.raises(ActivityNotFound):
        store.require(saved.id, "bob")


def test_list_is_newest_first_and_filtered_by_user(store, questions):
    first = store.save(_draft(questions, username="ana", title="At School"))
    second = store.save(_draft(questions, username="ana", title="My Family"))
    store.save(_draft(questions, username="bob"))

    listed = store.list_by_type("listening", "ana")
    assert {r.id for r in listed} == {first.id, second.id}
    assert listed[0].created_at >= listed[1].created_at
    assert len(store.list_by_type("listening")) == 3
    assert store.list_by_type("reading") == []


def test_every_save_is_a_new_record(store, questions):
    a = store.save(_draft(questions))
    b = store.save(_draft(questions))
    assert a.id != b.id


def test_created_at_is_naive_utc(store, questions):
    before = datetime.now(timezone.utc).replace(tzinfo=None)
    saved = store.save(_draft(questions))
    after = datetime.now(timezone.utc).replace(tzinfo=None)
    loaded = store.get(saved.id)
    assert loaded.created_at.tzinfo is None
    assert before <= loaded.created_at <= after
