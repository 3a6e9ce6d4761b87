"""Turn unchecked model drafts into TravelNodes and keep their slots unique."""

import logging
import math
import uuid
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from backend.app.models.itinerary import GeneratedNodeDraft, TravelNode
from backend.app.models.poi import CandidatePOI
from backend.app.planning.normalizer import (
    normalize_node_type,
    normalize_time_slot,
    normalize_transport_mode,
)

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = 60
DEFAULT_SCHEDULED_TIME = "09:00"
DEFAULT_DAY = 1
DEFAULT_ORDER = 1.0


def parse_drafts(raw_nodes: list[Any]) -> list[GeneratedNodeDraft]:
    """Validate raw model node objects, skipping entries that are not objects."""
    drafts = []
    for index, raw in enumerate(raw_nodes):
        if not isinstance(raw, dict):
            logger.warning(f"Skipping non-object node at position {index}: {raw!r:.80}")
            continue
        try:
            drafts.append(GeneratedNodeDraft.model_validate(raw))
        except ValidationError as e:
            logger.warning(f"Skipping malformed node at position {index}: {e}")
    return drafts


def build_node(
    draft: GeneratedNodeDraft,
    *,
    itinerary_id: str,
    position: int,
    poi: CandidatePOI | None = None,
    positional_order: bool = False,
) -> TravelNode:
    """Build one TravelNode from a draft, filling defaults.

    Args:
        draft: Model-proposed node
        itinerary_id: Owning itinerary
        position: 0-based position of the draft in the model's list
        poi: Listed POI whose name matches the draft exactly, if any
        positional_order: Default a missing order to position+1 instead of 1

    Returns:
        A normal, unlit node; verified only when backed by a POI
    """
    time_slot = normalize_time_slot(draft.time_slot)
    transport_mode = normalize_transport_mode(draft.transport_mode)

    if poi is not None:
        address = poi.address
        description = draft.description or poi.description
    else:
        address = draft.address or ""
        description = draft.description or ""

    default_order = float(position + 1) if positional_order else DEFAULT_ORDER

    return TravelNode(
        id=str(uuid.uuid4()),
        itinerary_id=itinerary_id,
        name=draft.name or f"Stop {position + 1}",
        type=normalize_node_type(draft.type),
        address=address,
        description=description,
        activity=draft.activity or "",
        time_slot=time_slot.value if time_slot else "",
        estimated_duration=draft.estimated_duration or DEFAULT_DURATION_MINUTES,
        scheduled_time=draft.scheduled_time or DEFAULT_SCHEDULED_TIME,
        day_index=draft.day_index or DEFAULT_DAY,
        order=draft.order or default_order,
        verified=poi is not None,
        is_lit=False,
        is_starting_point=draft.is_starting_point,
        scenic_area_name=draft.scenic_area_name,
        price_info=draft.price_info,
        ticket_info=draft.ticket_info,
        tips=draft.tips,
        transport_mode=transport_mode.value if transport_mode else None,
        transport_duration=draft.transport_duration,
        transport_note=draft.transport_note,
    )


def build_nodes(
    drafts: list[GeneratedNodeDraft],
    *,
    itinerary_id: str,
    pois: Mapping[str, CandidatePOI] | None = None,
    positional_order: bool = False,
) -> list[TravelNode]:
    """Build nodes for a whole model response.

    POI matching is by exact name against `pois`.
    """
    pois = pois or {}
    return [
        build_node(
            draft,
            itinerary_id=itinerary_id,
            position=position,
            poi=pois.get(draft.name) if draft.name else None,
            positional_order=positional_order,
        )
        for position, draft in enumerate(drafts)
    ]


def normalize_slots(nodes: list[TravelNode], days: int | None = None) -> list[TravelNode]:
    """Make (day, order) unique across the itinerary.

    When `days` is given, day numbers are clamped into [1, days]. Within a day,
    a node whose order collides with (or falls behind) the previous node is
    moved to the next free integer after it, so relative order is preserved
    and non-colliding nodes keep their keys.

    Returns:
        New node objects sorted by (day, order)
    """
    clamped: list[tuple[int, float, int, TravelNode]] = []
    for index, node in enumerate(nodes):
        day = node.day_index
        if days is not None:
            day = min(max(day, 1), days)
        clamped.append((day, node.order, index, node))
    clamped.sort(key=lambda item: item[:3])

    result: list[TravelNode] = []
    previous: tuple[int, float] | None = None
    for day, order, _, node in clamped:
        if previous is not None and previous[0] == day and order <= previous[1]:
            order = float(math.floor(previous[1]) + 1)
            logger.info(f"Moved node {node.name!r} to slot (day {day}, order {order})")
        if day != node.day_index or order != node.order:
            node = node.model_copy(update={"day_index": day, "order": order})
        result.append(node)
        previous = (day, order)
    return result
