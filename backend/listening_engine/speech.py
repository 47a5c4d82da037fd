"""Text-to-speech port.

The engine speaks one utterance at a time and tells us only when it finished or
failed. It never reports elapsed time, and it may not exist at all, in which case the
exercise is offered as a read-only transcript.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Sequence

from .errors import SpeechUnavailable

CompleteCallback = Callable[[], None]
ErrorCallback = Callable[[str], None]

_PREFERRED_VOICE_RE = re.compile(
    r"Google|Microsoft|Samantha|Daniel|Karen|Zira|David|Kate|Moira|Alex|Premium|Natural",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class Voice:
    name: str
    lang: str


class Utterance(Protocol):
    def cancel(self) -> None: ...


class SpeechEngine(Protocol):
    @property
    def available(self) -> bool: ...

    def speak(
        self,
        text: str,
        voice_hint: str,
        rate: float,
        *,
        on_complete: CompleteCallback,
        on_error: ErrorCallback,
    ) -> Utterance: ...

    def cancel(self) -> None: ...


class UnavailableSpeechEngine:
    """Stand-in used when the runtime has no speech capability."""

    available = False

    def speak(self, text, voice_hint, rate, *, on_complete, on_error):
        raise SpeechUnavailable("No text-to-speech engine is available")

    def cancel(self) -> None:
        return None


def pick_voice(voices: Sequence[Voice]) -> Optional[Voice]:
    english = [v for v in voices if v.lang.lower().startswith("en")]
    if not english:
        return None
    us = [v for v in english if v.lang.lower().startswith("en-us")]

    def preferred(group: Sequence[Voice]) -> Optional[Voice]:
        return next((v for v in group if _PREFERRED_VOICE_RE.search(v.name)), None)

    return preferred(us) or preferred(english) or (us[0] if us else english[0])
