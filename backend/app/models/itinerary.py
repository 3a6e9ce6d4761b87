"""Itinerary models - persisted plan, nodes, and unchecked model drafts."""

import math
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from backend.app.models.common import NodeStatus, NodeType

_TRUE_STRINGS = {"true", "yes", "1", "y"}


class GeneratedNodeDraft(BaseModel):
    """Node proposed by the generative model, before normalization.

    Every field is optional. Keys arrive in camelCase; text fields accept any
    scalar, and malformed numerics (non-numeric, zero, negative) become None
    so that default-filling can treat them as missing.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_camel)

    name: str | None = None
    type: str | None = None
    address: str | None = None
    description: str | None = None
    activity: str | None = None
    time_slot: str | None = None
    estimated_duration: int | None = None
    scheduled_time: str | None = None
    day_index: int | None = None
    order: float | None = None
    is_starting_point: bool = False
    scenic_area_name: str | None = None
    price_info: str | None = None
    ticket_info: str | None = None
    tips: str | None = None
    transport_mode: str | None = None
    transport_duration: int | None = None
    transport_note: str | None = None

    @field_validator(
        "name",
        "type",
        "address",
        "description",
        "activity",
        "time_slot",
        "scheduled_time",
        "scenic_area_name",
        "price_info",
        "ticket_info",
        "tips",
        "transport_mode",
        "transport_note",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, v: Any) -> str | None:
        """Keep scalars as text, drop anything structured."""
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, (int, float)):
            return str(v)
        if isinstance(v, str):
            stripped = v.strip()
            return stripped or None
        return None

    @field_validator("estimated_duration", "day_index", "transport_duration", mode="before")
    @classmethod
    def coerce_positive_int(cls, v: Any) -> int | None:
        """Positive integers only; everything else counts as missing."""
        number = _as_number(v)
        if number is None or number < 1:
            return None
        return int(number)

    @field_validator("order", mode="before")
    @classmethod
    def coerce_positive_order(cls, v: Any) -> float | None:
        """Positive order keys only (fractional keys allowed)."""
        number = _as_number(v)
        if number is None or number <= 0:
            return None
        return number

    @field_validator("is_starting_point", mode="before")
    @classmethod
    def coerce_flag(cls, v: Any) -> bool:
        """Accept booleans and common truthy strings."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.strip().lower() in _TRUE_STRINGS
        return False


def _as_number(v: Any) -> float | None:
    if v is None or isinstance(v, bool):
        return None
    if not isinstance(v, (int, float, str)):
        return None
    try:
        number = float(v.strip() if isinstance(v, str) else v)
    except (ValueError, OverflowError):
        return None
    # json.loads accepts NaN and Infinity, and 1e400 parses to inf
    if not math.isfinite(number):
        return None
    return number


class TravelNode(BaseModel):
    """One scheduled stop in a day's itinerary."""

    id: str
    itinerary_id: str
    name: str
    type: NodeType
    address: str = ""
    description: str = ""
    activity: str = ""
    time_slot: str = ""
    estimated_duration: int = 60
    scheduled_time: str = "09:00"
    day_index: int = Field(default=1, ge=1, description="1-based day number")
    order: float = Field(
        default=1,
        gt=0,
        description="Within-day sort key; fractional keys mark inserted replacement nodes",
    )
    verified: bool = False
    verification_info: str | None = None
    is_lit: bool = False
    node_status: NodeStatus = NodeStatus.normal
    status_reason: str | None = None
    parent_node_id: str | None = None
    is_starting_point: bool = False
    scenic_area_name: str | None = None
    price_info: str | None = None
    ticket_info: str | None = None
    tips: str | None = None
    transport_mode: str | None = None
    transport_duration: int | None = None
    transport_note: str | None = None

    @property
    def slot(self) -> tuple[int, float]:
        """(day, order) position of the node."""
        return (self.day_index, self.order)


class Itinerary(BaseModel):
    """Day-by-day plan for one trip."""

    id: str
    trip_id: str
    destination: str
    total_days: int = Field(..., ge=1)
    start_date: date | None = None
    nodes: list[TravelNode] = Field(default_factory=list)
    user_preferences: list[str] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=lambda: datetime.now(UTC))
    version: int = Field(default=0, ge=0, description="Optimistic concurrency counter")

    def ordered_nodes(self) -> list[TravelNode]:
        """Nodes sorted by (day, order)."""
        return sorted(self.nodes, key=lambda n: n.slot)

    def nodes_for_day(self, day_index: int) -> list[TravelNode]:
        """Nodes of one day sorted by order."""
        return [n for n in self.ordered_nodes() if n.day_index == day_index]

    def find_node(self, node_id: str) -> TravelNode | None:
        """Look up a node by id."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


class ChatHistoryMessage(BaseModel):
    """One prior turn of the planning conversation."""

    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime | None = None


class ItineraryUpdateResult(BaseModel):
    """Result of a conversational mutation."""

    itinerary: Itinerary
    response: str
    changed: bool = False


class NodeChangeResult(BaseModel):
    """Result of a change transition: the retired original and its replacement."""

    original_node: TravelNode
    new_node: TravelNode


class OutcomeStatus(str, Enum):
    """Status of a lifecycle or manual-edit request."""

    ok = "ok"
    not_found = "not_found"
    illegal_transition = "illegal_transition"
    conflict = "conflict"


class LifecycleOutcome(BaseModel):
    """Structured result of a lifecycle entry point; never raised."""

    status: OutcomeStatus
    message: str = ""
    nodes: list[TravelNode] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.ok
