"""Itinerary service: the entry points used by the owning application layer."""

import logging
from typing import Any

from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from backend.app.adapters.amap import PoiSearchProvider, get_poi_provider
from backend.app.adapters.tavily import PlaceVerifier, get_place_verifier
from backend.app.config import Settings, get_settings
from backend.app.db.engine import create_session_factory, get_async_engine
from backend.app.db.repositories import ItineraryRepository
from backend.app.db.sql_repositories import SqlItineraryRepository
from backend.app.errors import (
    LifecycleError,
    NodeNotFoundError,
    PlannerError,
    StaleItineraryError,
)
from backend.app.llm.client import ChatClient, get_chat_client
from backend.app.models.common import NodeStatus
from backend.app.models.conditions import SearchConditions
from backend.app.models.itinerary import (
    ChatHistoryMessage,
    Itinerary,
    ItineraryUpdateResult,
    LifecycleOutcome,
    OutcomeStatus,
    TravelNode,
)
from backend.app.planning.composer import ItineraryComposer
from backend.app.planning.lifecycle import NodeLifecycleEngine
from backend.app.planning.mutation import ConversationalMutationEngine
from backend.app.planning.normalizer import normalize_node_type
from backend.app.planning.poi_aggregator import PoiAggregator
from backend.app.planning.prompts import (
    REPLACEMENT_DESCRIPTION_SYSTEM_PROMPT,
    build_replacement_description_prompt,
)
from backend.app.utils.metrics import place_verification_total

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"
UNVERIFIABLE_INFO = "Could not confirm this place exists; please check it yourself"
VERIFICATION_UNAVAILABLE_INFO = "Verification is temporarily unavailable; please check it yourself"

# Fields a manual edit may touch; identity, status and linkage are never edited
EDITABLE_FIELDS = frozenset(
    {
        "name",
        "type",
        "address",
        "description",
        "activity",
        "time_slot",
        "estimated_duration",
        "scheduled_time",
        "day_index",
        "order",
        "verified",
        "verification_info",
        "is_lit",
        "is_starting_point",
        "scenic_area_name",
        "price_info",
        "ticket_info",
        "tips",
        "transport_mode",
        "transport_duration",
        "transport_note",
    }
)


def _failure_outcome(error: PlannerError) -> LifecycleOutcome:
    if isinstance(error, NodeNotFoundError):
        status = OutcomeStatus.not_found
    elif isinstance(error, StaleItineraryError):
        status = OutcomeStatus.conflict
    else:
        status = OutcomeStatus.illegal_transition
    logger.info(f"Lifecycle request rejected ({status.value}): {error}")
    return LifecycleOutcome(status=status, message=str(error))


class ItineraryService:
    """Wires the planning components behind one facade."""

    def __init__(
        self,
        chat_client: ChatClient,
        poi_provider: PoiSearchProvider,
        repository: ItineraryRepository,
        settings: Settings | None = None,
        place_verifier: PlaceVerifier | None = None,
    ):
        settings = settings or get_settings()
        self.chat_client = chat_client
        self.place_verifier = place_verifier
        self.repository = repository
        self.chat_temperature = settings.llm_chat_temperature
        self.composer = ItineraryComposer(
            chat_client,
            PoiAggregator(poi_provider, page_size=settings.poi_page_size),
            repository,
            settings,
        )
        self.mutation = ConversationalMutationEngine(chat_client, repository, settings)
        self.lifecycle = NodeLifecycleEngine(repository)

    async def generate_itinerary(
        self,
        trip_id: str,
        destination: str,
        conditions: SearchConditions,
        days: int,
    ) -> Itinerary:
        """Generate and store a fresh itinerary for a trip.

        Raises:
            ItineraryGenerationError: If no itinerary could be generated
        """
        return await self.composer.generate(trip_id, destination, conditions, days)

    async def update_with_preference(
        self,
        itinerary: Itinerary,
        message: str,
        history: list[ChatHistoryMessage],
    ) -> ItineraryUpdateResult:
        """Apply a natural-language request. Never raises."""
        return await self.mutation.update(itinerary, message, history)

    async def get_itinerary(self, trip_id: str) -> Itinerary | None:
        return await self.repository.get_itinerary(trip_id)

    async def manual_update_node(
        self, trip_id: str, node_id: str, updates: dict[str, Any]
    ) -> TravelNode | None:
        """Edit content fields of one node.

        Keys may be snake_case or camelCase. Fields outside EDITABLE_FIELDS are
        ignored; `is_lit` can be set but never cleared.

        Returns:
            The updated node, or None if the trip/node is unknown, the values
            are invalid, the day is outside the trip, the new slot is taken, or
            the itinerary changed concurrently
        """
        itinerary = await self.repository.get_itinerary(trip_id)
        if itinerary is None:
            return None
        node = itinerary.find_node(node_id)
        if node is None:
            return None

        changes: dict[str, Any] = {}
        for key, value in updates.items():
            field = to_snake(key)
            if field not in EDITABLE_FIELDS:
                logger.debug(f"Ignoring non-editable field {key!r}")
                continue
            if field == "is_lit":
                if value:
                    changes["is_lit"] = True
                continue
            if field == "type":
                value = normalize_node_type(value)
            changes[field] = value

        try:
            updated = TravelNode.model_validate({**node.model_dump(), **changes})
        except ValidationError as e:
            logger.warning(f"Rejected edit of node {node_id}: {e}")
            return None

        if updated.day_index > itinerary.total_days:
            logger.warning(
                f"Rejected edit of node {node_id}: day {updated.day_index} is outside "
                f"the {itinerary.total_days}-day trip"
            )
            return None

        if any(n.id != node_id and n.slot == updated.slot for n in itinerary.nodes):
            logger.warning(f"Rejected edit of node {node_id}: slot {updated.slot} is taken")
            return None

        nodes = [updated if n.id == node_id else n for n in itinerary.nodes]
        try:
            await self.repository.save_itinerary(
                itinerary.model_copy(update={"nodes": nodes}),
                expected_version=itinerary.version,
            )
        except StaleItineraryError as e:
            logger.warning(f"Rejected edit of node {node_id}: {e}")
            return None

        return updated

    async def change_itinerary(
        self, trip_id: str, node_id: str, new_destination: str, reason: str
    ) -> LifecycleOutcome:
        """Replace a stop; nodes are [retired original, replacement] on success."""
        description = await self._describe_replacement(trip_id, node_id, new_destination, reason)
        try:
            result = await self.lifecycle.change_node(
                trip_id, node_id, new_destination, reason, description=description
            )
        except (LifecycleError, StaleItineraryError) as e:
            return _failure_outcome(e)
        return LifecycleOutcome(
            status=OutcomeStatus.ok, nodes=[result.original_node, result.new_node]
        )

    async def mark_as_unrealized(self, trip_id: str, node_id: str, reason: str) -> LifecycleOutcome:
        """Record that a stop did not happen; nodes are [updated node] on success."""
        try:
            node = await self.lifecycle.mark_unrealized(trip_id, node_id, reason)
        except (LifecycleError, StaleItineraryError) as e:
            return _failure_outcome(e)
        return LifecycleOutcome(status=OutcomeStatus.ok, nodes=[node])

    async def light_node(self, trip_id: str, node_id: str) -> LifecycleOutcome:
        """Mark a stop as recorded.

        For a replacement stop the nodes are [lit node, replaced node];
        otherwise [lit node].
        """
        itinerary = await self.repository.get_itinerary(trip_id)
        node = itinerary.find_node(node_id) if itinerary is not None else None

        try:
            if node is not None and node.node_status == NodeStatus.changed:
                lit, parent = await self.lifecycle.light_changed_node(trip_id, node_id)
                nodes = [lit] if parent is None else [lit, parent]
            else:
                nodes = [await self.lifecycle.light_node(trip_id, node_id)]
        except (LifecycleError, StaleItineraryError) as e:
            return _failure_outcome(e)
        return LifecycleOutcome(status=OutcomeStatus.ok, nodes=nodes)

    async def verify_node(self, node: TravelNode, city: str) -> TravelNode:
        """Check a stop against web search. Never raises.

        Returns:
            A copy of the node with `verified` and `verification_info` set; the
            stored itinerary is not touched
        """
        if self.place_verifier is None:
            place_verification_total.labels(outcome="unavailable").inc()
            return node.model_copy(
                update={"verified": False, "verification_info": VERIFICATION_UNAVAILABLE_INFO}
            )

        try:
            found = await self.place_verifier.verify(node.name, city)
        except Exception as e:
            logger.warning(f"Verification of {node.name!r} in {city} failed: {e}")
            place_verification_total.labels(outcome="unavailable").inc()
            return node.model_copy(
                update={"verified": False, "verification_info": VERIFICATION_UNAVAILABLE_INFO}
            )

        if not found.exists:
            place_verification_total.labels(outcome="not_found").inc()
            return node.model_copy(
                update={"verified": False, "verification_info": UNVERIFIABLE_INFO}
            )

        place_verification_total.labels(outcome="verified").inc()
        rating = found.rating if found.rating is not None else UNKNOWN
        info = (
            f"Address: {found.address or UNKNOWN}, "
            f"opening hours: {found.opening_hours or UNKNOWN}, "
            f"rating: {rating}"
        )
        return node.model_copy(update={"verified": True, "verification_info": info})

    async def _describe_replacement(
        self, trip_id: str, node_id: str, new_destination: str, reason: str
    ) -> str | None:
        itinerary = await self.repository.get_itinerary(trip_id)
        original = itinerary.find_node(node_id) if itinerary is not None else None
        if original is None or original.node_status != NodeStatus.normal:
            return None

        try:
            text = await self.chat_client.chat(
                [
                    {"role": "system", "content": REPLACEMENT_DESCRIPTION_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": build_replacement_description_prompt(
                            original, new_destination, reason
                        ),
                    },
                ],
                temperature=self.chat_temperature,
                purpose="describe_replacement",
            )
        except Exception as e:
            logger.warning(f"Could not describe replacement {new_destination!r}: {e}")
            return None
        return text.strip() or None


def build_itinerary_service() -> ItineraryService:
    """Service wired to the configured model, Amap, Tavily and the SQL database.

    Raises:
        LLMConfigurationError: If no model API key is configured
        ValueError: If DATABASE_URL is not set
    """
    repository = SqlItineraryRepository(create_session_factory(get_async_engine()))
    return ItineraryService(
        get_chat_client(),
        get_poi_provider(),
        repository,
        place_verifier=get_place_verifier(),
    )
