# services/analysis_service.py
import logging
from typing import Optional

import httpx

from schemas.analysis import AnalysisResult, AnalyzeResponse
from schemas.post import PostContent, PostSummary
from services.openai_service import ModelClient, fetch_images
from services.prompt_service import build_analysis_prompt, format_author_info
from services.response_parser import parse_analysis
from services.search_service import ClaimSourceSearch
from services.twitter_service import ContentFetcher
from services.validation_service import validate_post_url

logger = logging.getLogger(__name__)


class AnalysisPipeline:
    """
    URL in, AnalyzeResponse out:
    validate -> fetch tweet -> build prompt -> call model -> parse -> ground.

    Every step raises a services.errors.AnalysisError subclass on failure.
    """

    def __init__(
        self,
        fetcher: ContentFetcher,
        model_client: ModelClient,
        image_client: httpx.Client,
        claim_search: Optional[ClaimSourceSearch] = None,
    ):
        self.fetcher = fetcher
        self.model_client = model_client
        self.image_client = image_client
        self.claim_search = claim_search

    def analyze(self, raw_url: str) -> AnalyzeResponse:
        post_id = validate_post_url(raw_url)
        post = self.fetcher.fetch(post_id)
        analysis = self.analyze_post(post)
        return AnalyzeResponse(
            tweet=PostSummary(
                text=post.text,
                author=post.author,
                images=post.images,
                createdAt=post.createdAt,
                engagement=post.engagement,
            ),
            analysis=analysis,
        )

    def analyze_post(self, post: PostContent) -> AnalysisResult:
        images = fetch_images(self.image_client, post.images) if post.images else []
        if len(images) < len(post.images):
            logger.info(f"Attached {len(images)} of {len(post.images)} images for tweet {post.id}")

        # only promise the model images it will actually receive
        prompt = build_analysis_prompt(
            post.text,
            format_author_info(post.author),
            has_images=bool(images),
        )

        reply = self.model_client.generate(prompt, images)
        result = parse_analysis(reply.text, reply.citations)

        if result.groundingSources is None and self.claim_search and self.claim_search.enabled:
            sources = self.claim_search.find_sources(result.claims)
            if sources:
                result = result.model_copy(update={"searchSources": sources})

        logger.info(f"Analyzed tweet {post.id}: score={result.score} verdict={result.verdict!r}")
        return result
