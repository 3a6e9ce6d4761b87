"""In-memory implementation of the itinerary repository."""

from datetime import UTC, datetime

from backend.app.errors import StaleItineraryError
from backend.app.models.itinerary import Itinerary


class InMemoryItineraryRepository:
    """In-memory implementation of ItineraryRepository.

    Stores deep copies so callers cannot mutate stored state.
    """

    def __init__(self) -> None:
        self._itineraries: dict[str, Itinerary] = {}

    async def get_itinerary(self, trip_id: str) -> Itinerary | None:
        """Get the itinerary of a trip."""
        stored = self._itineraries.get(trip_id)
        if stored is None:
            return None
        return stored.model_copy(deep=True)

    async def save_itinerary(
        self, itinerary: Itinerary, *, expected_version: int | None = None
    ) -> Itinerary:
        """Replace the stored itinerary, checking the version if asked."""
        stored = self._itineraries.get(itinerary.trip_id)
        current_version = stored.version if stored is not None else 0

        if expected_version is not None and expected_version != current_version:
            raise StaleItineraryError(itinerary.trip_id, expected_version, current_version)

        saved = itinerary.model_copy(
            update={"version": current_version + 1, "last_updated": datetime.now(UTC)},
            deep=True,
        )
        self._itineraries[itinerary.trip_id] = saved
        return saved.model_copy(deep=True)
