# services/twitter_service.py
"""
Tweet fetching via the Twitter syndication endpoint with an FxTwitter fallback.

Each source maps its own payload shape into a PostContent. A source signals
failure with SourceError; the ContentFetcher walks the sources in order and
raises ContentUnavailable once all of them have failed.
"""
import logging
import math
import re
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx

from config import settings
from schemas.post import PostAuthor, PostContent, PostEngagement
from services.errors import ContentUnavailable

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; PostCheck/1.0)"
BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
TOKEN_STRIP_REGEX = re.compile(r"(0+|\.)")


class SourceError(Exception):
    """A single tweet source could not produce a post."""


class PostSource(Protocol):
    name: str

    def fetch(self, post_id: str) -> PostContent:
        ...


def _float_to_radix(value: float, radix: int = 36) -> str:
    """
    Render a non-negative float in the given radix, emitting only as many
    fraction digits as the double's precision supports (shortest form).
    """
    integer = math.floor(value)
    fraction = value - integer
    delta = max(0.5 * (math.nextafter(value, math.inf) - value), math.nextafter(0.0, 1.0))

    fraction_digits: List[int] = []
    if fraction >= delta:
        while True:
            fraction *= radix
            delta *= radix
            digit = int(fraction)
            fraction_digits.append(digit)
            fraction -= digit
            if fraction > 0.5 or (fraction == 0.5 and digit & 1):
                if fraction + delta > 1:
                    # round up, carrying into the integer part if needed
                    while True:
                        if not fraction_digits:
                            integer += 1
                            break
                        last = fraction_digits.pop() + 1
                        if last < radix:
                            fraction_digits.append(last)
                            break
                    break
            if fraction < delta:
                break

    integer_part = ""
    integer = int(integer)
    while True:
        integer, remainder = divmod(integer, radix)
        integer_part = BASE36_DIGITS[remainder] + integer_part
        if integer == 0:
            break

    if not fraction_digits:
        return integer_part
    return integer_part + "." + "".join(BASE36_DIGITS[d] for d in fraction_digits)


def calculate_token(post_id: str) -> str:
    """Token expected by the syndication endpoint for a given tweet id."""
    value = (float(int(post_id)) / 1e15) * math.pi
    return TOKEN_STRIP_REGEX.sub("", _float_to_radix(value, 36))


def _photo_urls(photos: Any) -> List[str]:
    if not isinstance(photos, list):
        return []
    return [photo["url"] for photo in photos if isinstance(photo, dict) and photo.get("url")]


def _get_with_retry(client: httpx.Client, url: str, params: Optional[Dict[str, str]], retries: int) -> httpx.Response:
    """GET a URL, retrying transport errors only. Status codes are never retried."""
    attempt = 0
    while True:
        try:
            return client.get(url, params=params, headers={"User-Agent": USER_AGENT})
        except httpx.TransportError as e:
            if attempt >= retries:
                raise SourceError(f"transport error: {e}") from e
            attempt += 1
            logger.info(f"Retrying {url} after transport error ({attempt}/{retries}): {e}")
        except httpx.HTTPError as e:
            raise SourceError(f"request failed: {e}") from e


def _read_json(response: httpx.Response) -> Dict[str, Any]:
    if not response.is_success:
        raise SourceError(f"HTTP {response.status_code}")
    try:
        data = response.json()
    except ValueError as e:
        raise SourceError("response body is not JSON") from e
    if not isinstance(data, dict):
        raise SourceError("response body is not a JSON object")
    return data


class SyndicationSource:
    """Primary source: the public syndication endpoint used by embedded tweets."""

    name = "syndication"

    def __init__(self, client: httpx.Client, base_url: Optional[str] = None, retries: Optional[int] = None):
        self.client = client
        self.base_url = base_url or settings.SYNDICATION_URL
        self.retries = settings.FETCH_RETRIES if retries is None else retries

    def fetch(self, post_id: str) -> PostContent:
        params = {"id": post_id, "token": calculate_token(post_id)}
        data = _read_json(_get_with_retry(self.client, self.base_url, params, self.retries))

        user = data.get("user") if isinstance(data.get("user"), dict) else {}
        try:
            return PostContent(
                id=str(data.get("id_str") or post_id),
                text=data.get("text") or "",
                author=PostAuthor(
                    name=user.get("name") or "Unknown",
                    username=user.get("screen_name") or "unknown",
                    profileImage=user.get("profile_image_url_https"),
                    verified=bool(user.get("verified")),
                ),
                images=_photo_urls(data.get("photos")),
                createdAt=data.get("created_at"),
                engagement=PostEngagement(
                    likes=data.get("favorite_count"),
                    retweets=data.get("retweet_count"),
                    replies=data.get("reply_count"),
                ),
            )
        except ValueError as e:
            raise SourceError(f"unexpected payload shape: {e}") from e


class FxTwitterSource:
    """Fallback source: the FxTwitter mirror API."""

    name = "fxtwitter"

    def __init__(self, client: httpx.Client, base_url: Optional[str] = None, retries: Optional[int] = None):
        self.client = client
        self.base_url = (base_url or settings.FXTWITTER_URL).rstrip("/")
        self.retries = settings.FETCH_RETRIES if retries is None else retries

    def fetch(self, post_id: str) -> PostContent:
        url = f"{self.base_url}/{post_id}"
        data = _read_json(_get_with_retry(self.client, url, None, self.retries))

        tweet = data.get("tweet")
        if not isinstance(tweet, dict):
            raise SourceError("payload has no tweet object")

        author = tweet.get("author") if isinstance(tweet.get("author"), dict) else {}
        media = tweet.get("media") if isinstance(tweet.get("media"), dict) else {}
        try:
            return PostContent(
                id=str(tweet.get("id") or post_id),
                text=tweet.get("text") or "",
                author=PostAuthor(
                    name=author.get("name") or "Unknown",
                    username=author.get("screen_name") or "unknown",
                    profileImage=author.get("avatar_url"),
                    verified=bool(author.get("verified")),
                ),
                images=_photo_urls(media.get("photos")),
                createdAt=tweet.get("created_at"),
                engagement=PostEngagement(
                    likes=tweet.get("likes"),
                    retweets=tweet.get("retweets"),
                    replies=tweet.get("replies"),
                ),
            )
        except ValueError as e:
            raise SourceError(f"unexpected payload shape: {e}") from e


class ContentFetcher:
    def __init__(self, sources: Sequence[PostSource]):
        self.sources = list(sources)

    def fetch(self, post_id: str) -> PostContent:
        """Try each source once, in order. Raises ContentUnavailable when all fail."""
        for source in self.sources:
            try:
                post = source.fetch(post_id)
            except SourceError as e:
                logger.warning(f"Tweet source '{source.name}' failed for {post_id}: {e}")
                continue
            logger.info(f"Fetched tweet {post_id} from '{source.name}'")
            return post

        logger.error(f"All tweet sources failed for {post_id}")
        raise ContentUnavailable(f"no source could fetch tweet {post_id}")


def build_content_fetcher(client: httpx.Client) -> ContentFetcher:
    return ContentFetcher([SyndicationSource(client), FxTwitterSource(client)])
