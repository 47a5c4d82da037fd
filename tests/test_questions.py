import asyncio

from listening_engine.catalog import get_exercise
from listening_engine.questions import GENERATION_FAILED_MESSAGE, QuestionProvider

from .conftest import make_questions

EXERCISE = get_exercise("A1", "a1-1")
OTHER = get_exercise("A1", "a1-2")


async def test_load_fills_questions_and_notifies(fake_ai, questions):
    loaded = []
    provider = QuestionProvider(fake_ai.generate_questions, on_loaded=loaded.append)
    task = provider.load(EXERCISE, "A1")
    assert provider.loading
    await task
    assert provider.questions == questions
    assert provider.loading is False
    assert provider.error is None
    assert loaded == [questions]
    assert fake_ai.question_calls == [(EXERCISE.text, "A1", 10, EXERCISE.title)]


async def test_failure_leaves_empty_list_and_enables_retry(fake_ai):
    fake_ai.fail_questions = True
    provider = QuestionProvider(fake_ai.generate_questions)
    await provider.load(EXERCISE, "A1")
    assert provider.questions == []
    assert provider.error == GENERATION_FAILED_MESSAGE
    assert provider.can_retry


async def test_one_retry_makes_exactly_one_fetch(fake_ai, questions):
    fake_ai.fail_questions = True
    provider = QuestionProvider(fake_ai.generate_questions)
    await provider.load(EXERCISE, "A1")
    assert len(fake_ai.question_calls) == 1

    fake_ai.fail_questions = False
    task = provider.retry()
    await task
    assert len(fake_ai.question_calls) == 2
    assert provider.retry_token == 1
    assert provider.questions == questions
    assert provider.error is None


async def test_retry_while_loading_is_ignored(fake_ai):
    fake_ai.manual = True
    provider = QuestionProvider(fake_ai.generate_questions)
    task = provider.load(EXERCISE, "A1")
    await _settle()
    assert provider.retry() is None
    assert provider.retry_token == 0
    fake_ai.question_futures[0].set_result(make_questions(2))
    await task
    assert len(fake_ai.question_calls) == 1


async def test_retry_without_exercise_does_nothing(fake_ai):
    provider = QuestionProvider(fake_ai.generate_questions)
    assert provider.retry() is None
    assert fake_ai.question_calls == []


async def test_late_result_for_previous_exercise_is_discarded(fake_ai):
    fake_ai.manual = True
    provider = QuestionProvider(fake_ai.generate_questions)
    first = provider.load(EXERCISE, "A1")
    await _settle()
    second = provider.load(OTHER, "A1")
    await _settle()

    fresh = make_questions(3)
    fake_ai.question_futures[1].set_result(fresh)
    await second
    fake_ai.question_futures[0].set_result(make_questions(7))
    await first
    assert provider.questions == fresh


async def test_late_failure_after_clear_is_discarded(fake_ai):
    fake_ai.manual = True
    provider = QuestionProvider(fake_ai.generate_questions)
    task = provider.load(EXERCISE, "A1")
    await _settle()
    provider.clear()
    fake_ai.question_futures[0].set_exception(RuntimeError("boom"))
    await task
    assert provider.questions is None
    assert provider.error is None
    assert provider.loading is False


async def test_replace_wins_over_a_pending_fetch(fake_ai):
    fake_ai.manual = True
    provider = QuestionProvider(fake_ai.generate_questions)
    task = provider.load(EXERCISE, "A1")
    await _settle()
    saved = make_questions(4)
    provider.replace(saved)
    fake_ai.question_futures[0].set_result(make_questions(9))
    await task
    assert provider.questions == saved


async def _settle():
    # Let freshly created tasks run up to their first await
    for _ in range(3):
        await asyncio.sleep(0)


async def test_retry_after_replace_fetches_for_the_new_exercise(fake_ai):
    provider = QuestionProvider(fake_ai.generate_questions)
    provider.load(EXERCISE, "A1")
    provider.replace(make_questions(2), exercise=OTHER, level="A2")
    await provider.retry()
    assert fake_ai.question_calls[-1] == (OTHER.text, "A2", OTHER.question_count, OTHER.title)
