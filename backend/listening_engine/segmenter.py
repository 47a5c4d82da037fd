"""Sentence segmentation for listening passages."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List

# A run of non-terminators closed by one or more terminators, or by the end of the text
_SENTENCE_RE = re.compile(r"[^.!?]+(?:[.!?]+|$)")


@dataclass(frozen=True)
class Sentence:
    index: int
    text: str

    @property
    def word_count(self) -> int:
        return len(self.text.split())


def segment(text: str) -> List[Sentence]:
    """Split ``text`` into sentences in reading order, keeping the terminators.

    Whitespace-only input gives an empty list. Text with no usable segment comes back
    as a single sentence holding the trimmed input.
    """
    if not text or not text.strip():
        return []
    parts = [p.strip() for p in _SENTENCE_RE.findall(text)]
    parts = [p for p in parts if p]
    if not parts:
        return [Sentence(0, text.strip())]
    return [Sentence(i, p) for i, p in enumerate(parts)]
