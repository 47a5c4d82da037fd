import json

import pytest

from listening_engine.ai_service import (
    GENERIC_TIP,
    TIP_TEMPLATES,
    ListeningAI,
    _extract_json,
    _normalize_questions,
)
from listening_engine.errors import AnalysisUnavailable, QuestionGenerationError
from listening_engine.schemas import Question


class ScriptedClient:
    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts = []
        self.closed = 0

    async def generate(self, prompt, *, system_prompt=None, temperature=0.7, max_tokens=1500):
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def aclose(self):
        self.closed += 1


def _service(client, configured=True):
    return ListeningAI(lambda: client, is_configured=lambda: configured)


QUESTIONS_JSON = json.dumps(
    {
        "questions": [
            {"question": "What is the dog's name?", "options": ["Max", "Tom", "Leo", "Rex"], "correct": "Max"},
            {"question": "What colour is the dog?", "options": ["Black", "Brown", "White", "Grey"], "correctAnswer": 1},
            {"question": "Broken", "options": ["Only one"], "correct": "Only one"},
        ]
    }
)


def test_extract_json_from_fenced_block_and_surrounding_text():
    assert _extract_json('```json\n{"a": 1}\n```') == {"a": 1}
    assert _extract_json('Sure! Here it is: {"a": [1, 2]} Hope that helps.') == {"a": [1, 2]}
    assert _extract_json("[1, 2]") == [1, 2]
    with pytest.raises(ValueError):
        _extract_json("no json here")


def test_normalize_questions_assigns_ids_and_resolves_index_answers():
    questions = _normalize_questions(json.loads(QUESTIONS_JSON), count=10)
    assert [q.id for q in questions] == ["q1", "q2"]
    assert questions[1].correct == "Brown"


def test_normalize_questions_respects_count():
    assert len(_normalize_questions(json.loads(QUESTIONS_JSON), count=1)) == 1


async def test_generate_questions_parses_the_reply():
    client = ScriptedClient("```json\n" + QUESTIONS_JSON + "\n```")
    questions = await _service(client).generate_questions("passage", "A1", 10, "My Pet")
    assert questions[0] == Question(id="q1", question="What is the dog's name?", options=["Max", "Tom", "Leo", "Rex"], correct="Max")
    assert "CEFR A1" in client.prompts[0]
    assert client.closed == 1


async def test_generate_questions_wraps_failures():
    with pytest.raises(QuestionGenerationError, match="generation failed"):
        await _service(ScriptedClient("not json at all")).generate_questions("p", "B1", 5, "t")
    with pytest.raises(QuestionGenerationError):
        await _service(ScriptedClient(RuntimeError("timeout"))).generate_questions("p", "B1", 5, "t")


async def test_generate_questions_without_credentials_fails():
    def factory():
        raise ValueError("GEMINI_API_KEY is not set")

    with pytest.raises(QuestionGenerationError):
        await ListeningAI(factory).generate_questions("p", "B1", 5, "t")


async def test_analysis_parses_camel_case_tips():
    reply = json.dumps(
        {
            "summary": "Nice work.",
            "strengths": ["Main idea"],
            "improvements": "Numbers",
            "strategyTips": ["Predict", ""],
        }
    )
    analysis = await _service(ScriptedClient(reply)).analyze_performance("p", "B1", [], [], 80, title="t")
    assert analysis.summary == "Nice work."
    assert analysis.improvements == ["Numbers"]
    assert analysis.strategy_tips == ["Predict"]


async def test_analysis_unavailable_without_credentials():
    client = ScriptedClient()
    with pytest.raises(AnalysisUnavailable, match="no API key"):
        await _service(client, configured=False).analyze_performance("p", "B1", [], [], 0)
    assert client.prompts == []


async def test_analysis_failure_is_unavailable():
    with pytest.raises(AnalysisUnavailable):
        await _service(ScriptedClient("garbage")).analyze_performance("p", "B1", [], [], 0)


async def test_tips_fall_back_to_templates_without_credentials(questions):
    mistakes = [(q, q.options[1]) for q in questions]
    tips = await _service(ScriptedClient(), configured=False).generate_tips("p", mistakes)
    assert tips == {q.id: TIP_TEMPLATES[i] for i, q in enumerate(questions)}


async def test_tips_fall_back_per_question(questions):
    client = ScriptedClient('"Listen for the name."', RuntimeError("rate limited"))
    tips = await _service(client).generate_tips("p", [(questions[0], "x"), (questions[1], "y")])
    assert tips == {"q1": "Listen for the name.", "q2": GENERIC_TIP}
    assert client.closed == 1


async def test_no_mistakes_means_no_tips():
    assert await _service(ScriptedClient()).generate_tips("p", []) == {}
