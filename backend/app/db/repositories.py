"""Repository protocol interfaces for data access."""

from typing import Protocol

from backend.app.models.itinerary import Itinerary


class ItineraryRepository(Protocol):
    """Repository for itinerary operations.

    Itineraries are keyed by trip. A save replaces the stored itinerary and
    all of its nodes as one atomic unit.
    """

    async def get_itinerary(self, trip_id: str) -> Itinerary | None:
        """Get the itinerary of a trip.

        Args:
            trip_id: Trip ID

        Returns:
            Itinerary or None if the trip has none
        """
        ...

    async def save_itinerary(
        self, itinerary: Itinerary, *, expected_version: int | None = None
    ) -> Itinerary:
        """Replace the stored itinerary of `itinerary.trip_id`.

        Args:
            itinerary: Itinerary with its complete node list
            expected_version: Version the caller read; None skips the check.
                A trip without a stored itinerary is at version 0.

        Returns:
            The stored itinerary with its new version

        Raises:
            StaleItineraryError: If the stored version differs from expected_version
        """
        ...
