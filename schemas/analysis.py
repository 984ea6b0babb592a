import logging
import math
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Any, List, Literal, Optional

from schemas.post import PostSummary

logger = logging.getLogger(__name__)

# (lowest score in band, label), highest band first
VERDICT_BANDS = [
    (85, "Verified Facts"),
    (65, "Mostly True"),
    (40, "Mixed/Misleading"),
    (15, "Mostly BS"),
    (0, "Complete BS"),
]
VERDICTS = [label for _, label in VERDICT_BANDS]
CLAIM_VERDICTS = ["true", "false", "misleading", "unverifiable", "opinion"]
REASON_TYPES = ["positive", "negative", "neutral"]

Verdict = Literal["Verified Facts", "Mostly True", "Mixed/Misleading", "Mostly BS", "Complete BS"]
ClaimVerdictKind = Literal["true", "false", "misleading", "unverifiable", "opinion"]
ReasonType = Literal["positive", "negative", "neutral"]


def verdict_for_score(score: int) -> str:
    for floor, label in VERDICT_BANDS:
        if score >= floor:
            return label
    return VERDICT_BANDS[-1][1]


class Reason(BaseModel):
    model_config = ConfigDict(frozen=True)

    tag: str
    type: ReasonType = "neutral"
    explanation: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, value: Any) -> Any:
        normalized = value.strip().lower() if isinstance(value, str) else value
        if normalized not in REASON_TYPES:
            logger.warning(f"Unknown reason type {value!r}, using 'neutral'")
            return "neutral"
        return normalized


class ClaimVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    claim: str
    verdict: ClaimVerdictKind = "unverifiable"
    evidence: str = ""

    @field_validator("verdict", mode="before")
    @classmethod
    def coerce_verdict(cls, value: Any) -> Any:
        normalized = value.strip().lower() if isinstance(value, str) else value
        if normalized not in CLAIM_VERDICTS:
            logger.warning(f"Unknown claim verdict {value!r}, using 'unverifiable'")
            return "unverifiable"
        return normalized


class ImageAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str = ""
    concerns: List[str] = []
    likelyAuthentic: bool


class GroundingSource(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    url: str


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    verdict: Verdict
    summary: str
    reasons: List[Reason] = []
    claims: List[ClaimVerdict] = []
    imageAnalysis: Optional[ImageAnalysis] = None
    # citations from the model's own web search
    groundingSources: Optional[List[GroundingSource]] = None
    # fact-check search hits, only filled when the model cited nothing
    searchSources: Optional[List[GroundingSource]] = None

    @field_validator("score", mode="before")
    @classmethod
    def round_score(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("score must be a number")
        if isinstance(value, float):
            # range is checked before rounding so 100.5 cannot round down into it
            if not math.isfinite(value) or not 0 <= value <= 100:
                raise ValueError("score must be between 0 and 100")
            return round(value)
        return value

    @model_validator(mode="before")
    @classmethod
    def coerce_verdict(cls, data: Any) -> Any:
        """
        Replace a verdict outside the fixed labels with the label of the
        score band. Left alone when the score itself is unusable so that the
        score error is what gets reported.
        """
        if not isinstance(data, dict) or "verdict" not in data:
            return data
        verdict = data["verdict"]
        score = data.get("score")
        if verdict in VERDICTS:
            return data
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            return data
        if not 0 <= score <= 100:
            return data
        label = verdict_for_score(round(score))
        logger.warning(f"Unknown verdict {verdict!r}, using score band label {label!r}")
        return {**data, "verdict": label}


class AnalyzeRequest(BaseModel):
    url: Optional[str] = None


class AnalyzeResponse(BaseModel):
    success: bool = True
    tweet: PostSummary
    analysis: AnalysisResult


class ErrorResponse(BaseModel):
    error: str
