"""Gather hotel, restaurant, and attraction candidates for a destination."""

import asyncio
import logging

from backend.app.adapters.amap import (
    HOSTEL_TYPE,
    HOTEL_TYPE,
    RESTAURANT_TYPE,
    STAR_HOTEL_TYPE,
    PoiSearchProvider,
)
from backend.app.models.common import PoiCategory
from backend.app.models.conditions import SearchConditions
from backend.app.models.poi import CandidatePOI, PoiCandidates
from backend.app.utils.metrics import poi_search_errors_total

logger = logging.getLogger(__name__)

MAX_TAGS_PER_CATEGORY = 3
DEFAULT_ACTIVITY_TAG = "sightseeing"
HOTEL_PAGE_SIZE = 10
UNTAGGED_PAGE_SIZE = 10

PriceBand = tuple[float | None, float | None]

_BUDGET_BANDS: list[tuple[set[str], PriceBand]] = [
    ({"economy", "budget", "low", "经济", "低"}, (None, 300)),
    ({"medium", "mid", "moderate", "中等"}, (200, 600)),
    ({"high", "luxury", "high-end", "高端", "奢华"}, (500, None)),
]

_HOSTEL_STYLE_WORDS = ("homestay", "boutique", "hostel", "民宿", "特色")
_STAR_STYLE_WORDS = ("luxury", "high-end", "高端", "奢华")


def price_band_for(budget_level: str | None) -> PriceBand:
    """Nightly price band (min, max) for a budget tag; (None, None) when unknown."""
    if not budget_level:
        return (None, None)
    tag = budget_level.strip().lower()
    for tags, band in _BUDGET_BANDS:
        if tag in tags:
            return band
    return (None, None)


def hotel_type_for(travel_style: str | None) -> str:
    """Provider hotel type code for a travel-style tag."""
    style = (travel_style or "").lower()
    if any(word in style for word in _HOSTEL_STYLE_WORDS):
        return HOSTEL_TYPE
    if any(word in style for word in _STAR_STYLE_WORDS):
        return STAR_HOTEL_TYPE
    return HOTEL_TYPE


def within_price_band(poi: CandidatePOI, band: PriceBand) -> bool:
    """True if the POI's price fits the band. Unpriced POIs always fit."""
    if poi.price is None:
        return True
    min_price, max_price = band
    if min_price is not None and poi.price < min_price:
        return False
    if max_price is not None and poi.price > max_price:
        return False
    return True


def dedupe_by_name(pois: list[CandidatePOI]) -> list[CandidatePOI]:
    """Drop later POIs whose name was already seen."""
    seen: set[str] = set()
    unique = []
    for poi in pois:
        if poi.name in seen:
            continue
        seen.add(poi.name)
        unique.append(poi)
    return unique


class PoiAggregator:
    """Runs the three category searches for a destination."""

    def __init__(self, provider: PoiSearchProvider, page_size: int = 5):
        self.provider = provider
        self.page_size = page_size

    async def gather(self, destination: str, conditions: SearchConditions) -> PoiCandidates:
        """Search all three categories concurrently.

        A failing category contributes an empty list; the call itself never
        fails because of a provider error.
        """
        results = await asyncio.gather(
            self.search_hotels(destination, conditions.budget_level, conditions.travel_style),
            self.search_restaurants(destination, conditions.food_preferences),
            self.search_attractions(destination, conditions.activity_types),
            return_exceptions=True,
        )

        hotels, restaurants, attractions = (
            self._settle(category, result)
            for category, result in zip(
                (PoiCategory.hotel, PoiCategory.restaurant, PoiCategory.attraction),
                results,
                strict=True,
            )
        )

        logger.info(
            f"POIs for {destination}: {len(hotels)} hotels, "
            f"{len(restaurants)} restaurants, {len(attractions)} attractions"
        )
        return PoiCandidates(hotels=hotels, restaurants=restaurants, attractions=attractions)

    def _settle(
        self, category: PoiCategory, result: list[CandidatePOI] | BaseException
    ) -> list[CandidatePOI]:
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            logger.error(f"{category.value} search failed: {result}")
            poi_search_errors_total.labels(category=category.value).inc()
            return []
        return result

    async def search_hotels(
        self, destination: str, budget_level: str | None, travel_style: str | None
    ) -> list[CandidatePOI]:
        """One hotel search, filtered by the budget price band."""
        band = price_band_for(budget_level)
        pois = await self.provider.search(
            destination,
            PoiCategory.hotel,
            types=hotel_type_for(travel_style),
            page_size=HOTEL_PAGE_SIZE,
        )
        return [poi for poi in pois if within_price_band(poi, band)]

    async def search_restaurants(
        self, destination: str, food_preferences: list[str]
    ) -> list[CandidatePOI]:
        """Per-cuisine searches, with one untagged search when they find nothing."""
        results: list[CandidatePOI] = []
        for cuisine in food_preferences[:MAX_TAGS_PER_CATEGORY]:
            results.extend(
                await self.provider.search(
                    destination,
                    PoiCategory.restaurant,
                    keywords=cuisine,
                    page_size=self.page_size,
                )
            )

        if not results:
            results = await self.provider.search(
                destination,
                PoiCategory.restaurant,
                types=RESTAURANT_TYPE,
                page_size=UNTAGGED_PAGE_SIZE,
            )

        return dedupe_by_name(results)

    async def search_attractions(
        self, destination: str, activity_types: list[str]
    ) -> list[CandidatePOI]:
        """Per-activity searches."""
        tags = activity_types[:MAX_TAGS_PER_CATEGORY] or [DEFAULT_ACTIVITY_TAG]
        results: list[CandidatePOI] = []
        for activity in tags:
            results.extend(
                await self.provider.search(
                    destination,
                    PoiCategory.attraction,
                    keywords=activity,
                    page_size=self.page_size,
                )
            )
        return dedupe_by_name(results)
