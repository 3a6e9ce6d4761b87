"""POI search adapter for the Amap (Gaode) REST API v3."""

import logging
from typing import Any, Protocol

import httpx

from backend.app.config import get_settings
from backend.app.errors import PoiSearchError
from backend.app.models.common import PoiCategory
from backend.app.models.poi import CandidatePOI

logger = logging.getLogger(__name__)

# Amap POI type codes
RESTAURANT_TYPE = "050000"
HOTEL_TYPE = "100000"
STAR_HOTEL_TYPE = "100100"
HOSTEL_TYPE = "100400"
SCENIC_TYPE = "110000"

DEFAULT_TYPE_CODES: dict[PoiCategory, str] = {
    PoiCategory.hotel: HOTEL_TYPE,
    PoiCategory.restaurant: RESTAURANT_TYPE,
    PoiCategory.attraction: SCENIC_TYPE,
}

UNKNOWN_ADDRESS = "unknown address"


class PoiSearchProvider(Protocol):
    """Keyword/category POI search within one city."""

    async def search(
        self,
        city: str,
        category: PoiCategory,
        *,
        keywords: str | None = None,
        types: str | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> list[CandidatePOI]:
        """Search POIs of one category.

        Args:
            city: City name; results are limited to it
            category: Category the results are tagged with
            keywords: Free-text keywords (cuisine, activity, ...)
            types: Provider type code; defaults to the category's generic code
            page: 1-based result page
            page_size: Results per page

        Returns:
            Candidates in provider order
        """
        ...


def _text(value: Any) -> str | None:
    # Amap encodes missing fields as [] instead of omitting them
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _float(value: Any) -> float | None:
    text = _text(value)
    if text is None:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def format_poi(raw: dict[str, Any], category: PoiCategory) -> CandidatePOI | None:
    """Convert one raw Amap POI into a CandidatePOI.

    Returns None for entries without a name.
    """
    name = _text(raw.get("name"))
    if name is None:
        return None

    biz_ext = raw.get("biz_ext") if isinstance(raw.get("biz_ext"), dict) else {}
    rating = _text(raw.get("rating")) or _text(biz_ext.get("rating"))
    cost = _text(raw.get("cost")) or _text(biz_ext.get("cost"))
    open_time = _text(raw.get("opentime")) or _text(biz_ext.get("open_time"))

    fragments = []
    if rating:
        fragments.append(f"rating {rating}")
    if cost:
        fragments.append(f"avg ¥{cost}")
    if open_time:
        fragments.append(open_time)

    address_parts = [
        _text(raw.get("city")) or _text(raw.get("cityname")),
        _text(raw.get("district")) or _text(raw.get("adname")),
        _text(raw.get("address")),
    ]
    address = "".join(p for p in address_parts if p) or UNKNOWN_ADDRESS

    return CandidatePOI(
        name=name,
        category=category,
        address=address,
        description=", ".join(fragments) or _text(raw.get("type")) or "",
        rating=_float(rating),
        price=_float(cost),
        location=_text(raw.get("location")),
        tel=_text(raw.get("tel")),
        provider_id=_text(raw.get("id")),
    )


class AmapPoiClient:
    """Amap place-text search client."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://restapi.amap.com/v3",
        timeout: float = 10.0,
        page_size: int = 5,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the client.

        Args:
            api_key: Amap web-service key
            base_url: API base URL
            timeout: Request timeout in seconds (ignored when client is given)
            page_size: Default results per page
            client: Optional httpx client (for testing with mocks)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.page_size = page_size
        self._client = client

    async def search(
        self,
        city: str,
        category: PoiCategory,
        *,
        keywords: str | None = None,
        types: str | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> list[CandidatePOI]:
        """Search /place/text.

        Raises:
            PoiSearchError: When Amap answers with a non-success status
            httpx.HTTPError: On network or HTTP errors
        """
        params: dict[str, str | int] = {
            "key": self.api_key,
            "city": city,
            "citylimit": "true",
            "output": "json",
            "offset": page_size or self.page_size,
            "page": page,
            "extensions": "all",
            "types": types or DEFAULT_TYPE_CODES[category],
        }
        if keywords:
            params["keywords"] = keywords

        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=self.timeout)
            close_client = True

        try:
            response = await client.get(f"{self.base_url}/place/text", params=params)
            response.raise_for_status()
            data = response.json()
        finally:
            if close_client:
                await client.aclose()

        if str(data.get("status")) != "1":
            raise PoiSearchError(
                f"Amap search failed for {category.value} in {city}: "
                f"{data.get('info', 'unknown error')} ({data.get('infocode', '?')})"
            )

        candidates = []
        for raw in data.get("pois") or []:
            poi = format_poi(raw, category)
            if poi is not None:
                candidates.append(poi)

        logger.debug(
            f"Amap {category.value} search in {city} (keywords={keywords!r}) "
            f"returned {len(candidates)} POIs"
        )
        return candidates


def get_poi_provider() -> AmapPoiClient:
    """Build the configured Amap client."""
    settings = get_settings()
    if not settings.amap_api_key:
        logger.warning("AMAP_API_KEY is not configured; POI searches will fail")
    return AmapPoiClient(
        api_key=settings.amap_api_key,
        base_url=settings.amap_base_url,
        timeout=settings.poi_timeout_seconds,
        page_size=settings.poi_page_size,
    )
