"""
LLM-backed collaborators for the listening exercise.

Three operations sit behind one class so callers (the session and the router) can
swap the whole service in tests:

- generate_questions: a multiple-choice question set for a passage
- analyze_performance: short coaching feedback after answers are checked
- generate_tips: one tip per incorrect answer

Question generation failures surface as QuestionGenerationError, analysis failures
as AnalysisUnavailable. Tips never fail; they fall back to fixed strategy templates.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .errors import AnalysisUnavailable, QuestionGenerationError
from .gemini_client import GeminiClient
from .schemas import AIAnalysis, Question
from .settings import llm_configured

logger = logging.getLogger(__name__)

QUESTION_SYSTEM_PROMPT = "Expert English listening teacher. Return JSON with questions only."
ANALYSIS_SYSTEM_PROMPT = (
    "You are an expert English listening teacher. You analyse a student's listening exercise and return JSON only."
)
TIP_SYSTEM_PROMPT = "Expert English teacher. Return only the tip text, no quotes."

DEFAULT_SUMMARY = "Here is a quick overview of your listening performance based on this exercise."
GENERIC_TIP = "Listen carefully for keywords related to this question."

TIP_TEMPLATES: List[str] = [
    "Focus on key verbs and action words in the audio.",
    "Listen for specific details like times, places, or names.",
    "Pay attention to prepositions - they indicate location.",
    "The answer is often at the beginning or end.",
    "Listen for transition words like 'but' or 'however'.",
    "Focus on who is doing the action.",
    "Similar-sounding options can be tricky.",
    "The speaker often rephrases the answer.",
    "Listen for contrasts - 'not', 'don't', or 'never'.",
    "Keywords from the question often appear in audio.",
]

LEVEL_DESCRIPTORS: Dict[str, str] = {
    "A1": "very basic",
    "A2": "basic",
    "B1": "intermediate",
    "B2": "upper-intermediate",
    "C1": "advanced",
    "C2": "near-native",
}


# ============================================================================
# RESPONSE PARSING
# ============================================================================

def _extract_json(text: str) -> Any:
    """
    Extract a JSON value from LLM response text.

    Tries, in order: the raw text, a fenced ```json block, and the widest
    object or array substring.

    Raises:
        ValueError: If no valid JSON can be extracted
    """
    text = (text or "").strip()
    try:
        return json.loads(text)
    except Exception:
        pass

    code_block = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text)
    if code_block:
        try:
            return json.loads(code_block.group(1))
        except Exception:
            pass

    for open_ch, close_ch in (("{", "}"), ("[", "]")):
        first = text.find(open_ch)
        last = text.rfind(close_ch)
        if first != -1 and last > first:
            try:
                return json.loads(text[first : last + 1])
            except Exception:
                pass

    raise ValueError("LLM did not return valid JSON.")


def _normalize_list(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]
    if isinstance(value, str) and value.strip():
        return [value.strip()]
    return []


def _normalize_questions(data: Any, count: int) -> List[Question]:
    items = data.get("questions") if isinstance(data, dict) else data
    if not isinstance(items, list):
        raise ValueError("LLM response has no question list")

    questions: List[Question] = []
    for raw in items:
        if not isinstance(raw, dict):
            continue
        text = str(raw.get("question", "")).strip()
        options = [str(o).strip() for o in (raw.get("options") or []) if str(o).strip()]
        if not text or len(options) < 2:
            continue
        correct = raw.get("correct", raw.get("answer"))
        index = raw.get("correctAnswer", raw.get("correct_index"))
        if isinstance(correct, str) and correct.strip() in options:
            correct = correct.strip()
        elif isinstance(index, int) and 0 <= index < len(options):
            correct = options[index]
        elif isinstance(correct, int) and 0 <= correct < len(options):
            correct = options[correct]
        else:
            continue
        questions.append(Question(id=f"q{len(questions) + 1}", question=text, options=options, correct=correct))
        if len(questions) == count:
            break

    if not questions:
        raise ValueError("LLM returned no usable questions")
    return questions


def _normalize_analysis(data: Any) -> AIAnalysis:
    if not isinstance(data, dict):
        raise ValueError("Analysis must be a JSON object")
    summary = data.get("summary")
    return AIAnalysis(
        summary=summary.strip() if isinstance(summary, str) and summary.strip() else DEFAULT_SUMMARY,
        strengths=_normalize_list(data.get("strengths")),
        improvements=_normalize_list(data.get("improvements")),
        strategy_tips=_normalize_list(data.get("strategyTips", data.get("strategy_tips"))),
    )


# ============================================================================
# PROMPTS
# ============================================================================

def _build_questions_prompt(passage: str, level: str, count: int, title: str) -> str:
    descriptor = LEVEL_DESCRIPTORS.get(level, "intermediate")
    return (
        f"Create {count} multiple-choice listening comprehension questions for the passage below.\n"
        f"Title: {title}\n"
        f"CEFR {level}: questions and options must use {descriptor} vocabulary and grammar.\n\n"
        f'Passage:\n"""{passage}"""\n\n'
        "Rules:\n"
        "- Questions are answerable ONLY from the passage as heard\n"
        "- Exactly 4 options per question, exactly one correct\n"
        "- Test gist, detail and inference; vary the position of the correct option\n\n"
        "Return ONLY JSON (no markdown):\n"
        '{"questions": [{"question": "...", "options": ["...", "...", "...", "..."], "correct": "<the correct option text>"}]}'
    )


def _build_analysis_prompt(
    passage: str,
    level: str,
    title: str,
    correct: Sequence[Mapping[str, str]],
    incorrect: Sequence[Mapping[str, str]],
    percent: int,
) -> str:
    total = len(correct) + len(incorrect)
    return (
        "A student has just completed a listening comprehension exercise.\n\n"
        f"Transcript title: {title}\n"
        f"Approximate CEFR level: {level}\n"
        "Transcript (excerpt, first 400 characters):\n"
        f'"""{passage[:400]}..."""\n\n'
        f"Total questions: {total}\n"
        f"Correct answers: {len(correct)}\n"
        f"Overall score (percent): {percent}%\n\n"
        f"Correct questions:\n{json.dumps(list(correct), indent=2)}\n\n"
        f"Incorrect questions (if any):\n{json.dumps(list(incorrect), indent=2)}\n\n"
        "Based on this information, analyse the student's listening performance.\n\n"
        "Return ONLY a compact JSON object (no markdown, no explanation text around it) with this exact shape:\n"
        "{\n"
        '  "summary": "1-3 sentences of friendly feedback about this performance.",\n'
        '  "strengths": ["short bullet about a strength", "..."],\n'
        '  "improvements": ["short bullet about an area to improve", "..."],\n'
        '  "strategyTips": ["very short, practical listening strategy tip", "..."]\n'
        "}\n\n"
        "Rules:\n"
        "- Each array should have between 2 and 4 items if possible.\n"
        "- Sentences should be clear and B1-B2 friendly.\n"
        "- Strategy tips must focus on listening skills (not grammar drills)."
    )


def _build_tip_prompt(passage: str, question: Question, answer: str) -> str:
    return (
        "You are an expert English listening teacher. A student answered incorrectly.\n\n"
        f'Question: "{question.question}"\n'
        f'Student\'s wrong answer: "{answer}"\n'
        f'Correct answer: "{question.correct}"\n'
        f'Context: "{passage[:200]}..."\n\n'
        "Provide ONE very short tip (max 12 words) to help them understand their mistake. "
        "Focus on listening strategies.\n\n"
        "Return ONLY the tip text, nothing else."
    )


# ============================================================================
# SERVICE
# ============================================================================

class ListeningAI:
    def __init__(
        self,
        client_factory: Callable[[], GeminiClient] = GeminiClient,
        *,
        is_configured: Callable[[], bool] = llm_configured,
    ) -> None:
        self._client_factory = client_factory
        self._is_configured = is_configured

    @property
    def configured(self) -> bool:
        return self._is_configured()

    async def generate_questions(self, passage: str, level: str, count: int, title: str) -> List[Question]:
        prompt = _build_questions_prompt(passage, level, count, title)
        try:
            client = self._client_factory()
            try:
                raw = await client.generate(
                    prompt,
                    system_prompt=QUESTION_SYSTEM_PROMPT,
                    max_tokens=min(count * 150 + 500, 3000),
                )
            finally:
                await client.aclose()
            return _normalize_questions(_extract_json(raw), count)
        except Exception as err:
            raise QuestionGenerationError() from err

    async def analyze_performance(
        self,
        passage: str,
        level: str,
        correct: Sequence[Mapping[str, str]],
        incorrect: Sequence[Mapping[str, str]],
        percent: int,
        *,
        title: str = "",
    ) -> AIAnalysis:
        if not self.configured:
            raise AnalysisUnavailable("AI analysis is not available because no API key is configured.")
        prompt = _build_analysis_prompt(passage, level, title, correct, incorrect, percent)
        try:
            client = self._client_factory()
            try:
                raw = await client.generate(prompt, system_prompt=ANALYSIS_SYSTEM_PROMPT, max_tokens=300)
            finally:
                await client.aclose()
            return _normalize_analysis(_extract_json(raw))
        except Exception as err:
            raise AnalysisUnavailable("AI analysis could not be generated. Please try again later.") from err

    async def generate_tips(self, passage: str, mistakes: Sequence[tuple]) -> Dict[str, str]:
        """Tips keyed by question id for ``(question, given_answer)`` pairs."""
        if not mistakes:
            return {}
        if not self.configured:
            return {q.id: TIP_TEMPLATES[i % len(TIP_TEMPLATES)] for i, (q, _) in enumerate(mistakes)}

        tips: Dict[str, str] = {}
        client: Optional[GeminiClient] = None
        try:
            client = self._client_factory()
            for question, answer in mistakes:
                try:
                    raw = await client.generate(
                        _build_tip_prompt(passage, question, answer),
                        system_prompt=TIP_SYSTEM_PROMPT,
                        temperature=0.8,
                        max_tokens=50,
                    )
                    tip = raw.strip().strip("\"'")
                    tips[question.id] = tip or GENERIC_TIP
                except Exception as err:
                    logger.warning("Tip generation failed for %s: %s", question.id, err)
                    tips[question.id] = GENERIC_TIP
        except ValueError as err:
            logger.warning("Tip generation unavailable: %s", err)
        finally:
            if client is not None:
                await client.aclose()
        for question, _ in mistakes:
            tips.setdefault(question.id, GENERIC_TIP)
        return tips
