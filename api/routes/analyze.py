import logging
from fastapi import APIRouter, Depends, Request

from schemas.analysis import AnalyzeRequest, AnalyzeResponse, ErrorResponse
from services.errors import AnalysisError, InvalidInput, RateLimited

router = APIRouter()
logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


def get_client_id(request: Request) -> str:
    """
    Best-effort client identity from proxy headers. Spoofable, so it is only
    good enough for rate limiting.
    """
    forwarded_for = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded_for.split(",")[0].strip()
    if first_hop:
        return first_hop
    real_ip = request.headers.get("x-real-ip", "").strip()
    return real_ip or UNKNOWN_CLIENT


def enforce_rate_limit(request: Request) -> None:
    limiter = request.app.state.rate_limiter
    client_id = get_client_id(request)
    if not limiter.check(client_id):
        logger.warning(f"Rate limit exceeded for client {client_id}")
        raise RateLimited(
            public_message=f"Rate limit exceeded. Maximum {limiter.max_requests} requests per minute."
        )


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    dependencies=[Depends(enforce_rate_limit)],
)
def analyze(req: AnalyzeRequest, request: Request):
    """
    Fetch the tweet behind the given URL and return an AI truthfulness assessment.
    """
    if not req.url:
        raise InvalidInput("URL is required")

    try:
        return request.app.state.pipeline.analyze(req.url)
    except AnalysisError:
        raise
    except Exception as e:
        logger.error(f"Unexpected analysis error: {e}", exc_info=True)
        raise AnalysisError(str(e)) from e
