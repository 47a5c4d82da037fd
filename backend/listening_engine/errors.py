"""Error taxonomy for the listening engine.

Playback and question-fetch failures are recoverable and normally surface as state
(``error`` attributes) rather than exceptions; these types mark the boundaries where
a collaborator failed and are what the routers translate into HTTP responses.
"""


class ListeningEngineError(Exception):
    """Base class for every error raised by this package."""


class QuestionGenerationError(ListeningEngineError):
    def __init__(self, message: str = "generation failed"):
        super().__init__(message)


class AnalysisUnavailable(ListeningEngineError):
    def __init__(self, message: str = "analysis unavailable"):
        super().__init__(message)


class ExerciseNotFound(ListeningEngineError):
    pass


class LevelLocked(ListeningEngineError):
    pass


class ActivityNotFound(ListeningEngineError):
    pass


class SpeechUnavailable(ListeningEngineError):
    pass
