"""Place verification adapter backed by the Tavily web search API."""

import logging
import re
from typing import Any, Protocol

import httpx

from backend.app.config import get_settings
from backend.app.models.poi import PlaceVerification

logger = logging.getLogger(__name__)

ADDRESS_PATTERN = re.compile(r"(?:地址|address)\s*[：:]\s*([^，。;\n]+)", re.IGNORECASE)
HOURS_PATTERN = re.compile(
    r"(?:营业时间|opening hours|hours)\s*[：:]\s*([^，。;\n]+)", re.IGNORECASE
)
RATING_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(?:分|/\s*5\b)")

DESCRIPTION_CHARS = 200


class PlaceVerifier(Protocol):
    """Checks whether a named place exists in a city."""

    async def verify(self, name: str, city: str) -> PlaceVerification:
        """Look the place up.

        Returns:
            `exists=False` when nothing was found

        Raises:
            httpx.HTTPError: When the lookup itself fails
        """
        ...


def extract_verification(results: list[dict[str, Any]]) -> PlaceVerification:
    """Pull address, hours and rating out of search result snippets."""
    if not results:
        return PlaceVerification(exists=False)
    contents = [r["content"] for r in results if isinstance(r.get("content"), str)]

    combined = " ".join(contents)
    address = ADDRESS_PATTERN.search(combined)
    hours = HOURS_PATTERN.search(combined)
    rating = RATING_PATTERN.search(combined)

    return PlaceVerification(
        exists=True,
        address=address.group(1).strip() if address else None,
        opening_hours=hours.group(1).strip() if hours else None,
        rating=float(rating.group(1)) if rating else None,
        description=contents[0][:DESCRIPTION_CHARS] if contents else None,
    )


class TavilyPlaceVerifier:
    """Verifies places with one basic-depth Tavily search."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.tavily.com",
        timeout: float = 15.0,
        max_results: int = 3,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the verifier.

        Args:
            api_key: Tavily API key
            base_url: API base URL
            timeout: Request timeout in seconds (ignored when client is given)
            max_results: Search results to inspect
            client: Optional httpx client (for testing with mocks)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_results = max_results
        self._client = client

    async def verify(self, name: str, city: str) -> PlaceVerification:
        payload = {
            "api_key": self.api_key,
            "query": f"{name} {city} address opening hours rating",
            "search_depth": "basic",
            "max_results": self.max_results,
            "include_answer": True,
        }

        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=self.timeout)
            close_client = True

        try:
            response = await client.post(f"{self.base_url}/search", json=payload)
            response.raise_for_status()
            data = response.json()
        finally:
            if close_client:
                await client.aclose()

        results = [r for r in data.get("results") or [] if isinstance(r, dict)]
        logger.debug(f"Tavily lookup for {name!r} in {city} returned {len(results)} results")
        return extract_verification(results)


def get_place_verifier() -> TavilyPlaceVerifier:
    """Build the configured Tavily verifier."""
    settings = get_settings()
    if not settings.tavily_api_key:
        logger.warning("TAVILY_API_KEY is not configured; place verification will fail")
    return TavilyPlaceVerifier(
        api_key=settings.tavily_api_key,
        base_url=settings.tavily_base_url,
        timeout=settings.verification_timeout_seconds,
        max_results=settings.verification_max_results,
    )
