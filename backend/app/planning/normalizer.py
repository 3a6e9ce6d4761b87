"""Map free-form model labels onto the closed node vocabularies.

Every normalizer is total: it never raises, and it is idempotent
(normalizing an already-canonical value returns it unchanged).
"""

import logging
from typing import Any

from backend.app.models.common import NodeType, TimeSlot, TransportMode
from backend.app.utils.metrics import node_type_fallback_total

logger = logging.getLogger(__name__)

DEFAULT_NODE_TYPE = NodeType.attraction

NODE_TYPE_SYNONYMS: dict[str, NodeType] = {
    # Canonical
    "attraction": NodeType.attraction,
    "restaurant": NodeType.restaurant,
    "hotel": NodeType.hotel,
    "transport": NodeType.transport,
    # Chinese
    "景点": NodeType.attraction,
    "餐厅": NodeType.restaurant,
    "餐饮": NodeType.restaurant,
    "美食": NodeType.restaurant,
    "酒店": NodeType.hotel,
    "住宿": NodeType.hotel,
    "交通": NodeType.transport,
    "自由活动": NodeType.attraction,
    "休闲": NodeType.attraction,
    "娱乐": NodeType.attraction,
    "购物": NodeType.attraction,
    "活动": NodeType.attraction,
    "咖啡": NodeType.restaurant,
    "咖啡厅": NodeType.restaurant,
    "酒吧": NodeType.restaurant,
    # Near-synonyms
    "scenic": NodeType.attraction,
    "sightseeing": NodeType.attraction,
    "activity": NodeType.attraction,
    "shopping": NodeType.attraction,
    "food": NodeType.restaurant,
    "dining": NodeType.restaurant,
    "cafe": NodeType.restaurant,
    "bar": NodeType.restaurant,
    "accommodation": NodeType.hotel,
    "lodging": NodeType.hotel,
    "transit": NodeType.transport,
    "transportation": NodeType.transport,
}

TIME_SLOT_SYNONYMS: dict[str, TimeSlot] = {
    **{slot.value: slot for slot in TimeSlot},
    "抵达": TimeSlot.arrival,
    "到达": TimeSlot.arrival,
    "早餐": TimeSlot.breakfast,
    "上午": TimeSlot.morning,
    "午餐": TimeSlot.lunch,
    "中午": TimeSlot.lunch,
    "下午": TimeSlot.afternoon,
    "晚餐": TimeSlot.dinner,
    "晚上": TimeSlot.evening,
    "夜间": TimeSlot.evening,
    "入住酒店": TimeSlot.hotel,
    "回酒店": TimeSlot.hotel,
    "返程": TimeSlot.departure,
    "离开": TimeSlot.departure,
    "night": TimeSlot.evening,
    "noon": TimeSlot.lunch,
}

TRANSPORT_MODE_SYNONYMS: dict[str, TransportMode] = {
    **{mode.value: mode for mode in TransportMode},
    "walking": TransportMode.walk,
    "步行": TransportMode.walk,
    "公交": TransportMode.bus,
    "metro": TransportMode.subway,
    "地铁": TransportMode.subway,
    "cab": TransportMode.taxi,
    "打车": TransportMode.taxi,
    "出租车": TransportMode.taxi,
    "car": TransportMode.drive,
    "driving": TransportMode.drive,
    "自驾": TransportMode.drive,
}


def _key(label: Any) -> str | None:
    if isinstance(label, str):
        return label.strip().lower()
    return None


def normalize_node_type(label: Any) -> NodeType:
    """Map a model-supplied type label onto NodeType.

    Lookup is case-insensitive and whitespace-trimmed. Anything unmatched,
    including None and non-strings, becomes the default type.
    """
    key = _key(label)
    if key is not None and key in NODE_TYPE_SYNONYMS:
        return NODE_TYPE_SYNONYMS[key]

    logger.warning(f"Unknown node type {label!r}, defaulting to '{DEFAULT_NODE_TYPE.value}'")
    node_type_fallback_total.inc()
    return DEFAULT_NODE_TYPE


def normalize_time_slot(label: Any) -> TimeSlot | None:
    """Map a time-slot label onto TimeSlot, or None when unrecognized."""
    key = _key(label)
    if not key:
        return None
    slot = TIME_SLOT_SYNONYMS.get(key)
    if slot is None:
        logger.info(f"Unknown time slot {label!r}, leaving unset")
    return slot


def normalize_transport_mode(label: Any) -> TransportMode | None:
    """Map a transport-mode label onto TransportMode, or None when unrecognized."""
    key = _key(label)
    if not key:
        return None
    mode = TRANSPORT_MODE_SYNONYMS.get(key)
    if mode is None:
        logger.info(f"Unknown transport mode {label!r}, leaving unset")
    return mode
