# services/errors.py
"""
Domain errors raised by the analysis pipeline.

Each error carries the HTTP status it maps to and a message that is safe to
show to clients. Internal detail (upstream payloads, raw model output) goes
into the log, never into ``public_message``.
"""
from typing import Optional


class AnalysisError(Exception):
    status_code = 500
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, *, public_message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.public_message = public_message or self.default_message


class InvalidInput(AnalysisError):
    status_code = 400
    default_message = "Invalid URL"

    def __init__(self, message: Optional[str] = None):
        # validation messages describe the caller's own input, so they are shown as-is
        super().__init__(message, public_message=message)


class TooLong(InvalidInput):
    default_message = "URL is too long"


class PatternMismatch(InvalidInput):
    default_message = (
        "Invalid Twitter/X URL. Must be a tweet URL like "
        "https://twitter.com/username/status/123456789"
    )


class InvalidIdentifier(InvalidInput):
    default_message = "Invalid tweet ID in URL"


class RateLimited(AnalysisError):
    status_code = 429
    default_message = "Rate limit exceeded. Maximum 10 requests per minute."


class ContentUnavailable(AnalysisError):
    status_code = 502
    default_message = "Failed to fetch tweet. The tweet may not exist or is unavailable."


class ModelUnavailable(AnalysisError):
    default_message = "Failed to analyze tweet. Please try again."


class UnparsableResponse(AnalysisError):
    default_message = "Failed to analyze tweet. Please try again."

    def __init__(self, message: Optional[str] = None, raw_prefix: str = ""):
        super().__init__(message)
        self.raw_prefix = raw_prefix


class MalformedResult(AnalysisError):
    default_message = "Failed to analyze tweet. Please try again."
