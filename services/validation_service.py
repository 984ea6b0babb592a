# services/validation_service.py
"""
URL validation and sanitization for Twitter/X post URLs.
"""
import re
from typing import Any

from services.errors import InvalidIdentifier, InvalidInput, PatternMismatch, TooLong

TWEET_URL_REGEX = re.compile(
    r"^https?://(twitter\.com|x\.com)/[a-zA-Z0-9_]+/status/(\d+)",
    re.ASCII,
)
CONTROL_CHARS_REGEX = re.compile(r"[\x00-\x1f\x7f-\x9f]")
DIGITS_REGEX = re.compile(r"\d+", re.ASCII)

MAX_INPUT_LENGTH = 300
MAX_POST_ID_LENGTH = 20


def sanitize_input(raw: Any) -> str:
    """Drop control characters and surrounding whitespace."""
    if not isinstance(raw, str):
        return ""
    return CONTROL_CHARS_REGEX.sub("", raw).strip()


def validate_post_url(raw: Any) -> str:
    """
    Validate a tweet URL and return the numeric post id after ``/status/``.

    Raises:
        InvalidInput: the input is empty after sanitizing
        TooLong: the input exceeds MAX_INPUT_LENGTH
        PatternMismatch: scheme, host or path shape is wrong
        InvalidIdentifier: the captured id is not 1-20 digits
    """
    sanitized = sanitize_input(raw)

    if not sanitized:
        raise InvalidInput("URL cannot be empty")

    if len(sanitized) > MAX_INPUT_LENGTH:
        raise TooLong()

    match = TWEET_URL_REGEX.match(sanitized)
    if not match:
        raise PatternMismatch()

    post_id = match.group(2)
    if not post_id or len(post_id) > MAX_POST_ID_LENGTH or not DIGITS_REGEX.fullmatch(post_id):
        raise InvalidIdentifier()

    return post_id
