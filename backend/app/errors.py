"""Exception hierarchy for the itinerary planning core."""


class PlannerError(Exception):
    """Base class for all planning core errors."""

    pass


class JsonRecoveryError(PlannerError):
    """Model output could not be recovered into JSON by any repair strategy."""

    def __init__(self, raw_text: str, preview_chars: int = 500):
        self.raw_preview = raw_text[:preview_chars]
        super().__init__(f"Failed to parse JSON response: {self.raw_preview}...")


class LLMError(PlannerError):
    """Generative model call failed."""

    pass


class LLMConfigurationError(LLMError):
    """Generative model client is not configured (missing API key)."""

    pass


class PoiSearchError(PlannerError):
    """POI provider returned an error status."""

    pass


class ItineraryGenerationError(PlannerError):
    """Both the POI-backed and the AI-only generation paths failed."""

    pass


class StaleItineraryError(PlannerError):
    """Itinerary was modified by another request since it was read."""

    def __init__(self, trip_id: str, expected_version: int, actual_version: int):
        self.trip_id = trip_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Itinerary for trip {trip_id} is at version {actual_version}, "
            f"expected {expected_version}"
        )


class LifecycleError(PlannerError):
    """Base class for node lifecycle failures."""

    pass


class NodeNotFoundError(LifecycleError):
    """Trip has no itinerary or the itinerary has no such node."""

    def __init__(self, trip_id: str, node_id: str):
        self.trip_id = trip_id
        self.node_id = node_id
        super().__init__(f"Node {node_id} not found for trip {trip_id}")


class IllegalTransitionError(LifecycleError):
    """Requested lifecycle transition is not allowed from the node's current state."""

    pass
