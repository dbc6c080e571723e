"""Error taxonomy for the daily game.

Generation errors never reach the HTTP boundary: the content generators
absorb them and fall back to static content. Session errors are client-input
errors and map to 4xx responses.
"""
from typing import Optional


class CropGenError(Exception):
    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)


# ------------------------------------------------------------------------------
# Generation client / normalizer
# ------------------------------------------------------------------------------

class GenerationError(CropGenError):
    message = "Content generation failed"


class QuotaExceeded(GenerationError):
    message = "Gemini API quota exceeded"


class GenerationTimeout(GenerationError):
    message = "Gemini API call timed out"


class EmptyResponse(GenerationError):
    message = "Empty response from Gemini"


class UpstreamError(GenerationError):
    def __init__(self, message: Optional[str] = None, status: Optional[int] = None):
        self.status = status
        super().__init__(message or "Gemini API error")


class MalformedGenerationOutput(GenerationError):
    def __init__(self, context: str):
        self.context = context
        super().__init__(f"Failed to parse JSON for {context}")


# ------------------------------------------------------------------------------
# Content store
# ------------------------------------------------------------------------------

class ContentGenerationFailed(CropGenError):
    status_code = 500
    message = "Failed to generate today's content"


# ------------------------------------------------------------------------------
# Session tracker
# ------------------------------------------------------------------------------

class SessionError(CropGenError):
    status_code = 400


class NotFound(SessionError):
    status_code = 404
    message = "No active game found. Please start a new game."


class AlreadyAnswered(SessionError):
    status_code = 400
    message = "Question already answered"


class QuestionNotFound(SessionError):
    status_code = 404
    message = "Question not found"
