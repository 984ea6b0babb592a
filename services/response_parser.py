# services/response_parser.py
"""
Recover an AnalysisResult from free-form model output.

Models are told to return bare JSON but regularly wrap it in code fences or
surround it with prose. Each recovery tier below is a standalone function
returning a ParseAttempt; parse_json_response tries them in order and the
first JSON object wins. The object is then validated into AnalysisResult.
"""
import json
import logging
import re
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import BaseModel, ValidationError

from schemas.analysis import AnalysisResult, GroundingSource
from services.errors import MalformedResult, UnparsableResponse

logger = logging.getLogger(__name__)

CODE_FENCE_REGEX = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)
RAW_PREFIX_LENGTH = 500


class ParseAttempt(BaseModel):
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.data is not None


def _loads_object(text: str) -> ParseAttempt:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        return ParseAttempt(error=f"invalid JSON: {e}")
    if not isinstance(value, dict):
        return ParseAttempt(error=f"expected a JSON object, got {type(value).__name__}")
    return ParseAttempt(data=value)


def parse_direct(text: str) -> ParseAttempt:
    return _loads_object(text)


def parse_code_fence(text: str) -> ParseAttempt:
    match = CODE_FENCE_REGEX.search(text)
    if not match:
        return ParseAttempt(error="no code fence")
    return _loads_object(match.group(1))


def parse_brace_span(text: str) -> ParseAttempt:
    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last <= first:
        return ParseAttempt(error="no brace-delimited span")
    return _loads_object(text[first:last + 1])


PARSE_TIERS: List[Callable[[str], ParseAttempt]] = [
    parse_direct,
    parse_code_fence,
    parse_brace_span,
]


def parse_json_response(text: str) -> Dict[str, Any]:
    """
    Extract a JSON object from the model's reply.

    Raises:
        UnparsableResponse: no tier produced a JSON object
    """
    errors = []
    for tier in PARSE_TIERS:
        attempt = tier(text)
        if attempt.ok:
            return attempt.data
        errors.append(f"{tier.__name__}: {attempt.error}")

    raw_prefix = text[:RAW_PREFIX_LENGTH]
    logger.error(f"Raw model response (first {RAW_PREFIX_LENGTH} chars): {raw_prefix}")
    raise UnparsableResponse("; ".join(errors), raw_prefix=raw_prefix)


def validate_analysis(data: Dict[str, Any]) -> AnalysisResult:
    """
    Raises:
        MalformedResult: required fields missing, wrong types, or score out of range
    """
    # sources are attached from response metadata and search, never taken from model text
    data = {key: value for key, value in data.items() if key not in ("groundingSources", "searchSources")}
    try:
        return AnalysisResult.model_validate(data)
    except ValidationError as e:
        logger.error(f"Model output failed schema validation: {e}")
        raise MalformedResult(f"schema validation failed with {e.error_count()} error(s)") from e


def extract_grounding_sources(citations: Iterable[Dict[str, Any]]) -> Optional[List[GroundingSource]]:
    """
    Keep citations that have both a title and a url, in order. Returns None
    rather than an empty list when nothing usable is left.
    """
    sources = []
    for citation in citations:
        title = citation.get("title")
        url = citation.get("url")
        if title and url:
            sources.append(GroundingSource(title=title, url=url))
    return sources or None


def parse_analysis(text: str, citations: Iterable[Dict[str, Any]] = ()) -> AnalysisResult:
    result = validate_analysis(parse_json_response(text))
    sources = extract_grounding_sources(citations)
    if sources:
        result = result.model_copy(update={"groundingSources": sources})
    return result
