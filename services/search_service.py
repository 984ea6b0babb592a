# services/search_service.py
"""
Supplementary grounding for analyses whose model reply carried no citations.
Uses Tavily, which is designed for AI/LLM search and returns reliable sources.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

from tavily import TavilyClient

from config import settings
from schemas.analysis import ClaimVerdict, GroundingSource

logger = logging.getLogger(__name__)

PLACEHOLDER_API_KEY = "your-tavily-api-key-here"

# Trusted news/fact-checking domains for prioritization
TRUSTED_FACT_CHECK_DOMAINS = [
    "reuters.com",
    "apnews.com",
    "factcheck.org",
    "snopes.com",
    "politifact.com",
    "bbc.com",
    "bbc.co.uk",
    "nytimes.com",
    "washingtonpost.com",
    "npr.org",
    "pbs.org",
    "theguardian.com",
    "nature.com",
    "sciencedirect.com",
    "pubmed.ncbi.nlm.nih.gov",
]


def get_tavily_client() -> Optional[TavilyClient]:
    """Get Tavily client if API key is configured."""
    if not settings.TAVILY_API_KEY or settings.TAVILY_API_KEY == PLACEHOLDER_API_KEY:
        return None
    return TavilyClient(api_key=settings.TAVILY_API_KEY)


def search_for_claim(
    claim: str,
    max_results: int = 3,
    include_domains: Optional[List[str]] = None,
    client: Optional[TavilyClient] = None,
) -> List[Dict[str, Any]]:
    """
    Search for sources related to a specific claim using Tavily.

    Args:
        claim: The factual claim to search for
        max_results: Maximum number of results to return (default 3)
        include_domains: Optional list of trusted domains to restrict to
        client: Override the Tavily client; defaults to get_tavily_client()

    Returns:
        List of source dictionaries with url, title, snippet, score, published_date
    """
    client = client or get_tavily_client()
    if not client:
        return []

    search_params = {
        "query": f"fact check: {claim}",
        "max_results": max_results,
        "search_depth": "basic",
        "include_answer": False,
    }
    if include_domains:
        search_params["include_domains"] = include_domains

    try:
        response = client.search(**search_params)
    except Exception as e:
        # search only supplements the model's own grounding
        logger.error(f"Error searching for claim: {e}")
        return []

    results = []
    for result in response.get("results", []):
        results.append({
            "url": result.get("url", ""),
            "title": result.get("title", ""),
            "snippet": (result.get("content") or "")[:500],
            "score": result.get("score", 0),
            "published_date": result.get("published_date", ""),
        })

    logger.info(f"Found {len(results)} sources for claim: {claim[:50]}...")
    return results


class ClaimSourceSearch:
    """Looks up grounding sources for the first few claims of an analysis."""

    def __init__(
        self,
        client: Optional[TavilyClient] = None,
        max_claims: int = 3,
        results_per_claim: int = 2,
        include_domains: Optional[List[str]] = None,
    ):
        self.client = client
        self.max_claims = max_claims
        self.results_per_claim = results_per_claim
        self.include_domains = include_domains or TRUSTED_FACT_CHECK_DOMAINS[:10]

    @property
    def enabled(self) -> bool:
        return self.client is not None or get_tavily_client() is not None

    def find_sources(self, claims: Sequence[ClaimVerdict]) -> Optional[List[GroundingSource]]:
        sources = []
        seen = set()
        # opinions have nothing to look up
        checkable = [c for c in claims if c.verdict != "opinion"]
        for claim in checkable[:self.max_claims]:
            for result in search_for_claim(
                claim.claim,
                max_results=self.results_per_claim,
                include_domains=self.include_domains,
                client=self.client,
            ):
                url = result.get("url")
                title = result.get("title")
                if not url or not title or url in seen:
                    continue
                seen.add(url)
                sources.append(GroundingSource(title=title, url=url))
        return sources or None
