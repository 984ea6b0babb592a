from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import httpx
import uvicorn
from api.routes.analyze import router as analyze_router
from config import Settings, settings as default_settings
from services.analysis_service import AnalysisPipeline
from services.errors import AnalysisError
from services.openai_service import OpenAIModelClient
from services.rate_limiter import SlidingWindowRateLimiter
from services.search_service import ClaimSourceSearch
from services.twitter_service import build_content_fetcher
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_pipeline(http_client: httpx.Client) -> AnalysisPipeline:
    return AnalysisPipeline(
        fetcher=build_content_fetcher(http_client),
        model_client=OpenAIModelClient(),
        image_client=http_client,
        claim_search=ClaimSourceSearch(),
    )


def build_rate_limiter(settings: Settings) -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        sweep_interval_seconds=settings.RATE_LIMIT_SWEEP_INTERVAL_SECONDS,
        max_clients=settings.RATE_LIMIT_MAX_CLIENTS,
        fail_open=settings.RATE_LIMIT_FAIL_OPEN,
    )


def create_app(
    settings: Optional[Settings] = None,
    pipeline: Optional[AnalysisPipeline] = None,
    rate_limiter: Optional[SlidingWindowRateLimiter] = None,
) -> FastAPI:
    settings = settings or default_settings
    http_client: Optional[httpx.Client] = None
    if pipeline is None:
        http_client = httpx.Client(timeout=settings.HTTP_TIMEOUT_SECONDS, follow_redirects=True)
        pipeline = build_pipeline(http_client)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if http_client is not None:
            http_client.close()

    app = FastAPI(
        title="Post Check API",
        version="1.0.0",
        lifespan=lifespan,
    )

    # built once per process and shared by every request
    app.state.pipeline = pipeline
    app.state.rate_limiter = rate_limiter or build_rate_limiter(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AnalysisError)
    async def analysis_error_handler(request: Request, exc: AnalysisError):
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__} on {request.url.path}: {exc}")
        else:
            logger.info(f"{type(exc).__name__} on {request.url.path}: {exc}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.info(f"Rejected request body on {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=400, content={"error": "URL is required"})

    app.include_router(
        analyze_router,
        prefix="/api",
        tags=["analyze"],
    )

    # Routes
    @app.get("/")
    async def root():
        return {"message": "Post Check Backend API", "version": "1.0.0"}

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy"}

    return app


app = create_app()


def run():
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True, env_file='.env')
