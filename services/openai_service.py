# services/openai_service.py
import base64
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence
from functools import lru_cache

import httpx
from openai import OpenAI, OpenAIError
from pydantic import BaseModel

from config import settings
from services.errors import ModelUnavailable

logger = logging.getLogger(__name__)

PLACEHOLDER_API_KEY = "sk-xxxx-your-key-here"
WEB_SEARCH_TOOL = {"type": "web_search_preview"}


class InlineImage(BaseModel):
    data: str  # base64
    mimeType: str = "image/jpeg"


class ModelReply(BaseModel):
    text: str
    # raw url_citation annotations; either field may be missing
    citations: List[Dict[str, Optional[str]]] = []


class ModelClient(Protocol):
    def generate(self, prompt: str, images: Sequence[InlineImage]) -> ModelReply:
        ...


@lru_cache(maxsize=1)
def get_openai_client() -> OpenAI:
    """
    Singleton-style OpenAI client so we don't recreate it everywhere.
    """
    if not settings.OPENAI_API_KEY or settings.OPENAI_API_KEY == PLACEHOLDER_API_KEY:
        raise ModelUnavailable("OPENAI_API_KEY is not configured")
    return OpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.MODEL_TIMEOUT_SECONDS)


def fetch_image_as_base64(client: httpx.Client, url: str) -> Optional[InlineImage]:
    """
    Download an image for multimodal input. Returns None on any failure so a
    broken image never sinks the whole analysis.
    """
    try:
        response = client.get(url)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        # image urls come straight from upstream payloads
        logger.warning(f"Error fetching image {url}: {e}")
        return None

    if not response.is_success:
        logger.warning(f"Error fetching image {url}: HTTP {response.status_code}")
        return None

    mime_type = response.headers.get("content-type", "").split(";")[0].strip() or "image/jpeg"
    return InlineImage(
        data=base64.b64encode(response.content).decode("ascii"),
        mimeType=mime_type,
    )


def fetch_images(client: httpx.Client, urls: Sequence[str], limit: Optional[int] = None) -> List[InlineImage]:
    limit = settings.MAX_IMAGES if limit is None else limit
    images = []
    for url in list(urls)[:limit]:
        image = fetch_image_as_base64(client, url)
        if image is not None:
            images.append(image)
    return images


def extract_citations(response: Any) -> List[Dict[str, Optional[str]]]:
    """Collect url_citation annotations from a Responses API result, in order."""
    citations = []
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) != "message":
            continue
        for part in getattr(item, "content", None) or []:
            for annotation in getattr(part, "annotations", None) or []:
                if getattr(annotation, "type", None) != "url_citation":
                    continue
                citations.append({
                    "title": getattr(annotation, "title", None),
                    "url": getattr(annotation, "url", None),
                })
    return citations


class OpenAIModelClient:
    """
    Calls the OpenAI Responses API with the prompt, inline images and the
    web search tool.

    - client: override the OpenAI client (tests); defaults to get_openai_client()
    - model / temperature / web_search: override values from settings
    """

    def __init__(
        self,
        client: Optional[OpenAI] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        web_search: Optional[bool] = None,
    ):
        self._client = client
        self.model = model or settings.OPENAI_MODEL
        self.temperature = settings.OPENAI_TEMPERATURE if temperature is None else temperature
        self.web_search = settings.OPENAI_WEB_SEARCH if web_search is None else web_search

    def generate(self, prompt: str, images: Sequence[InlineImage]) -> ModelReply:
        client = self._client or get_openai_client()

        content: List[Dict[str, Any]] = [{"type": "input_text", "text": prompt}]
        for image in images:
            content.append({
                "type": "input_image",
                "image_url": f"data:{image.mimeType};base64,{image.data}",
            })

        request: Dict[str, Any] = {
            "model": self.model,
            "input": [{"role": "user", "content": content}],
            "temperature": self.temperature,
        }
        if self.web_search:
            request["tools"] = [WEB_SEARCH_TOOL]

        try:
            response = client.responses.create(**request)
        except OpenAIError as e:
            logger.error(f"OpenAI API error: {e}")
            raise ModelUnavailable(f"model call failed: {e}") from e

        text = getattr(response, "output_text", None) or ""
        if not text.strip():
            logger.error("No response text from OpenAI API")
            raise ModelUnavailable("model returned no text")

        return ModelReply(text=text, citations=extract_citations(response))
