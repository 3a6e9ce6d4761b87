"""Models package - re-exports for convenience."""

from backend.app.models.common import NodeStatus, NodeType, PoiCategory, TimeSlot, TransportMode
from backend.app.models.conditions import SearchConditions
from backend.app.models.itinerary import (
    ChatHistoryMessage,
    GeneratedNodeDraft,
    Itinerary,
    ItineraryUpdateResult,
    LifecycleOutcome,
    NodeChangeResult,
    OutcomeStatus,
    TravelNode,
)
from backend.app.models.poi import CandidatePOI, PlaceVerification, PoiCandidates

__all__ = [
    # Common
    "NodeType",
    "NodeStatus",
    "TimeSlot",
    "TransportMode",
    "PoiCategory",
    # Conditions
    "SearchConditions",
    # POI
    "CandidatePOI",
    "PoiCandidates",
    "PlaceVerification",
    # Itinerary
    "GeneratedNodeDraft",
    "TravelNode",
    "Itinerary",
    "ChatHistoryMessage",
    "ItineraryUpdateResult",
    "NodeChangeResult",
    "OutcomeStatus",
    "LifecycleOutcome",
]
