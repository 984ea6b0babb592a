import json
from typing import Dict, List, Optional, Sequence

import httpx
import pytest

from schemas.post import PostAuthor, PostContent, PostEngagement
from services.openai_service import InlineImage, ModelReply
from services.twitter_service import SourceError

POST_ID = "1234567890123"
POST_URL = f"https://x.com/alice/status/{POST_ID}"

ANALYSIS = {
    "score": 72,
    "verdict": "Mostly True",
    "summary": "The headline figure is right but the framing omits context.",
    "reasons": [
        {"tag": "Factually Accurate", "type": "positive", "explanation": "The figure matches official data."},
        {"tag": "Misleading Context", "type": "negative", "explanation": "The comparison year is cherry-picked."},
    ],
    "claims": [
        {"claim": "Unemployment fell to 3.5%", "verdict": "true", "evidence": "BLS release."},
        {"claim": "This is the best economy ever", "verdict": "opinion", "evidence": "Subjective."},
    ],
    "imageAnalysis": None,
}


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSource:
    def __init__(self, name: str, post: Optional[PostContent] = None):
        self.name = name
        self.post = post
        self.calls: List[str] = []

    def fetch(self, post_id: str) -> PostContent:
        self.calls.append(post_id)
        if self.post is None:
            raise SourceError(f"{self.name} is down")
        return self.post


class FakeModelClient:
    def __init__(self, text: str = "", citations: Optional[List[Dict]] = None, error: Optional[Exception] = None):
        self.text = text
        self.citations = citations or []
        self.error = error
        self.calls = []

    def generate(self, prompt: str, images: Sequence[InlineImage]) -> ModelReply:
        self.calls.append((prompt, list(images)))
        if self.error is not None:
            raise self.error
        return ModelReply(text=self.text, citations=self.citations)


def make_post(images: Sequence[str] = ()) -> PostContent:
    return PostContent(
        id=POST_ID,
        text="Unemployment fell to 3.5%. Best economy ever!",
        author=PostAuthor(name="Alice", username="alice", verified=True),
        images=list(images),
        createdAt="2024-03-01T12:00:00.000Z",
        engagement=PostEngagement(likes=10, retweets=2, replies=1),
    )


def mock_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def post():
    return make_post()


@pytest.fixture
def analysis_json():
    return json.dumps(ANALYSIS)


@pytest.fixture
def no_images_client():
    def handler(request):
        raise AssertionError(f"unexpected image fetch: {request.url}")
    return mock_client(handler)
