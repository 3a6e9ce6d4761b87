"""Itinerary composition: POI-backed generation with an AI-only fallback."""

import logging
import uuid

from backend.app.config import Settings, get_settings
from backend.app.db.repositories import ItineraryRepository
from backend.app.errors import ItineraryGenerationError
from backend.app.llm.client import ChatClient, ChatMessage, chat_json
from backend.app.models.conditions import SearchConditions
from backend.app.models.itinerary import Itinerary, TravelNode
from backend.app.models.poi import CandidatePOI, PoiCandidates
from backend.app.planning.nodes import build_nodes, normalize_slots, parse_drafts
from backend.app.planning.poi_aggregator import PoiAggregator
from backend.app.planning.prompts import (
    AI_ONLY_SYSTEM_PROMPT,
    POI_PLANNER_SYSTEM_PROMPT,
    build_ai_only_prompt,
    build_poi_generation_prompt,
    format_poi_listing,
)
from backend.app.utils.metrics import itinerary_generation_total

logger = logging.getLogger(__name__)


class ItineraryComposer:
    """Generates and stores a full itinerary for a trip."""

    def __init__(
        self,
        chat_client: ChatClient,
        aggregator: PoiAggregator,
        repository: ItineraryRepository,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self.chat_client = chat_client
        self.aggregator = aggregator
        self.repository = repository
        self.temperature = settings.llm_generation_temperature
        self.min_attractions = settings.min_attractions_for_poi_plan
        self.max_hotels = settings.prompt_max_hotels
        self.max_restaurants = settings.prompt_max_restaurants
        self.max_attractions = settings.prompt_max_attractions

    async def generate(
        self,
        trip_id: str,
        destination: str,
        conditions: SearchConditions,
        days: int,
    ) -> Itinerary:
        """Generate, store and return a `days`-day itinerary.

        The POI-backed path runs first; any failure in it (provider errors,
        too few attractions, model or parse failure) switches to the AI-only
        path. The trip's existing itinerary id and preference log are kept.

        Args:
            trip_id: Trip to (re)plan
            destination: Destination city
            conditions: Preference tags
            days: Trip length in days

        Returns:
            The stored itinerary

        Raises:
            ValueError: If days < 1
            ItineraryGenerationError: If both paths fail or the save fails
        """
        if days < 1:
            raise ValueError("days must be at least 1")

        existing = await self.repository.get_itinerary(trip_id)
        itinerary_id = existing.id if existing is not None else str(uuid.uuid4())

        try:
            nodes = await self._compose_from_pois(itinerary_id, destination, conditions, days)
            path = "poi"
        except Exception as e:
            logger.warning(
                f"POI-backed generation for {destination} failed ({e}); using AI-only generation"
            )
            try:
                nodes = await self._compose_ai_only(itinerary_id, destination, conditions, days)
            except Exception as fallback_error:
                itinerary_generation_total.labels(path="failed").inc()
                logger.error(f"AI-only generation for {destination} failed: {fallback_error}")
                raise ItineraryGenerationError(
                    f"Could not generate an itinerary for {destination}: {fallback_error}"
                ) from fallback_error
            path = "ai_only"

        itinerary = Itinerary(
            id=itinerary_id,
            trip_id=trip_id,
            destination=destination,
            total_days=days,
            start_date=conditions.start_date,
            nodes=normalize_slots(nodes, days),
            user_preferences=list(existing.user_preferences) if existing is not None else [],
        )

        try:
            saved = await self.repository.save_itinerary(itinerary)
        except Exception as e:
            itinerary_generation_total.labels(path="failed").inc()
            raise ItineraryGenerationError(f"Could not store itinerary for trip {trip_id}") from e

        itinerary_generation_total.labels(path=path).inc()
        logger.info(
            f"Generated {days}-day itinerary for {destination} via {path} path "
            f"({len(saved.nodes)} nodes)"
        )
        return saved

    async def _compose_from_pois(
        self,
        itinerary_id: str,
        destination: str,
        conditions: SearchConditions,
        days: int,
    ) -> list[TravelNode]:
        candidates = await self.aggregator.gather(destination, conditions)
        if len(candidates.attractions) < self.min_attractions:
            raise ItineraryGenerationError(
                f"Insufficient POI data: {len(candidates.attractions)} attractions"
            )

        listing = format_poi_listing(
            candidates,
            max_hotels=self.max_hotels,
            max_restaurants=self.max_restaurants,
            max_attractions=self.max_attractions,
        )
        messages: list[ChatMessage] = [
            {"role": "system", "content": POI_PLANNER_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": build_poi_generation_prompt(destination, conditions, days, listing),
            },
        ]
        return await self._request_nodes(messages, itinerary_id, _poi_index(candidates))

    async def _compose_ai_only(
        self,
        itinerary_id: str,
        destination: str,
        conditions: SearchConditions,
        days: int,
    ) -> list[TravelNode]:
        messages: list[ChatMessage] = [
            {"role": "system", "content": AI_ONLY_SYSTEM_PROMPT},
            {"role": "user", "content": build_ai_only_prompt(destination, conditions, days)},
        ]
        return await self._request_nodes(messages, itinerary_id, None)

    async def _request_nodes(
        self,
        messages: list[ChatMessage],
        itinerary_id: str,
        pois: dict[str, CandidatePOI] | None,
    ) -> list[TravelNode]:
        raw_nodes = await chat_json(
            self.chat_client,
            messages,
            temperature=self.temperature,
            purpose="generate_itinerary",
            expect=list,
        )
        drafts = parse_drafts(raw_nodes)
        if not drafts:
            raise ItineraryGenerationError("Model returned no itinerary nodes")
        return build_nodes(drafts, itinerary_id=itinerary_id, pois=pois)


def _poi_index(candidates: PoiCandidates) -> dict[str, CandidatePOI]:
    index: dict[str, CandidatePOI] = {}
    for poi in candidates.all():
        index.setdefault(poi.name, poi)
    return index
