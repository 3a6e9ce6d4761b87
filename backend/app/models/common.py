"""Common types and enums shared across all models."""

from enum import Enum


class NodeType(str, Enum):
    """Canonical node type."""

    attraction = "attraction"
    restaurant = "restaurant"
    hotel = "hotel"
    transport = "transport"


class NodeStatus(str, Enum):
    """Node lifecycle status."""

    normal = "normal"
    changed = "changed"
    unrealized = "unrealized"
    changed_original = "changed_original"


class TimeSlot(str, Enum):
    """Time-of-day slot tag carried by every generated node."""

    arrival = "arrival"
    breakfast = "breakfast"
    morning = "morning"
    lunch = "lunch"
    afternoon = "afternoon"
    dinner = "dinner"
    evening = "evening"
    hotel = "hotel"
    departure = "departure"


class TransportMode(str, Enum):
    """Mode used to reach a node from the previous one."""

    walk = "walk"
    bus = "bus"
    subway = "subway"
    taxi = "taxi"
    drive = "drive"


class PoiCategory(str, Enum):
    """POI search category."""

    hotel = "hotel"
    restaurant = "restaurant"
    attraction = "attraction"
