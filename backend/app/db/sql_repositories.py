"""SQL implementation of the itinerary repository."""

import logging
from datetime import UTC, datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.db.models import ItineraryRow, TravelNodeRow
from backend.app.errors import StaleItineraryError
from backend.app.models.common import NodeStatus, NodeType
from backend.app.models.itinerary import Itinerary, TravelNode

logger = logging.getLogger(__name__)


def _to_node_row(node: TravelNode, itinerary_id: str) -> TravelNodeRow:
    return TravelNodeRow(
        id=node.id,
        itinerary_id=itinerary_id,
        name=node.name,
        type=node.type.value,
        address=node.address,
        description=node.description,
        activity=node.activity,
        time_slot=node.time_slot,
        estimated_duration=node.estimated_duration,
        scheduled_time=node.scheduled_time,
        day_index=node.day_index,
        node_order=node.order,
        verified=node.verified,
        verification_info=node.verification_info,
        is_lit=node.is_lit,
        node_status=node.node_status.value,
        status_reason=node.status_reason,
        parent_node_id=node.parent_node_id,
        is_starting_point=node.is_starting_point,
        scenic_area_name=node.scenic_area_name,
        price_info=node.price_info,
        ticket_info=node.ticket_info,
        tips=node.tips,
        transport_mode=node.transport_mode,
        transport_duration=node.transport_duration,
        transport_note=node.transport_note,
    )


def _to_node(row: TravelNodeRow) -> TravelNode:
    return TravelNode(
        id=row.id,
        itinerary_id=row.itinerary_id,
        name=row.name,
        type=NodeType(row.type),
        address=row.address,
        description=row.description,
        activity=row.activity,
        time_slot=row.time_slot,
        estimated_duration=row.estimated_duration,
        scheduled_time=row.scheduled_time,
        day_index=row.day_index,
        order=row.node_order,
        verified=row.verified,
        verification_info=row.verification_info,
        is_lit=row.is_lit,
        node_status=NodeStatus(row.node_status),
        status_reason=row.status_reason,
        parent_node_id=row.parent_node_id,
        is_starting_point=row.is_starting_point,
        scenic_area_name=row.scenic_area_name,
        price_info=row.price_info,
        ticket_info=row.ticket_info,
        tips=row.tips,
        transport_mode=row.transport_mode,
        transport_duration=row.transport_duration,
        transport_note=row.transport_note,
    )


class SqlItineraryRepository:
    """SQL implementation of ItineraryRepository.

    Each call runs in its own session; a save is one transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_itinerary(self, trip_id: str) -> Itinerary | None:
        """Get the itinerary of a trip."""
        async with self._session_factory() as session:
            row = (
                await session.execute(select(ItineraryRow).where(ItineraryRow.trip_id == trip_id))
            ).scalar_one_or_none()

            if row is None:
                return None

            node_rows = (
                await session.execute(
                    select(TravelNodeRow)
                    .where(TravelNodeRow.itinerary_id == row.id)
                    .order_by(TravelNodeRow.day_index, TravelNodeRow.node_order)
                )
            ).scalars()

            return Itinerary(
                id=row.id,
                trip_id=row.trip_id,
                destination=row.destination,
                total_days=row.total_days,
                start_date=row.start_date,
                nodes=[_to_node(n) for n in node_rows],
                user_preferences=list(row.user_preferences or []),
                last_updated=row.last_updated,
                version=row.version,
            )

    async def save_itinerary(
        self, itinerary: Itinerary, *, expected_version: int | None = None
    ) -> Itinerary:
        """Upsert the itinerary row and replace its nodes in one transaction."""
        now = datetime.now(UTC)

        async with self._session_factory() as session, session.begin():
            existing = (
                await session.execute(
                    select(ItineraryRow).where(ItineraryRow.trip_id == itinerary.trip_id)
                )
            ).scalar_one_or_none()
            current_version = existing.version if existing is not None else 0

            if expected_version is not None and expected_version != current_version:
                raise StaleItineraryError(itinerary.trip_id, expected_version, current_version)

            new_version = current_version + 1
            values = {
                "destination": itinerary.destination,
                "total_days": itinerary.total_days,
                "start_date": itinerary.start_date,
                "user_preferences": list(itinerary.user_preferences),
                "last_updated": now,
                "version": new_version,
            }

            if existing is not None and existing.id == itinerary.id:
                # Compare-and-swap guards against a writer that committed after our read
                result = await session.execute(
                    update(ItineraryRow)
                    .where(ItineraryRow.id == existing.id, ItineraryRow.version == current_version)
                    .values(**values)
                )
                if result.rowcount != 1:  # type: ignore[attr-defined]
                    raise StaleItineraryError(
                        itinerary.trip_id, current_version, current_version + 1
                    )
                await session.execute(
                    delete(TravelNodeRow).where(TravelNodeRow.itinerary_id == itinerary.id)
                )
            else:
                if existing is not None:
                    await session.execute(
                        delete(TravelNodeRow).where(TravelNodeRow.itinerary_id == existing.id)
                    )
                    await session.execute(
                        delete(ItineraryRow).where(ItineraryRow.id == existing.id)
                    )
                session.add(ItineraryRow(id=itinerary.id, trip_id=itinerary.trip_id, **values))
                await session.flush()

            # Parents before children for the self-referencing foreign key
            parents = [n for n in itinerary.nodes if n.parent_node_id is None]
            children = [n for n in itinerary.nodes if n.parent_node_id is not None]
            session.add_all([_to_node_row(n, itinerary.id) for n in parents])
            await session.flush()
            session.add_all([_to_node_row(n, itinerary.id) for n in children])
            await session.flush()

        logger.info(
            f"Saved itinerary {itinerary.id} for trip {itinerary.trip_id} "
            f"({len(itinerary.nodes)} nodes, version {new_version})"
        )
        nodes = [n.model_copy(update={"itinerary_id": itinerary.id}) for n in itinerary.nodes]
        return itinerary.model_copy(
            update={"version": new_version, "last_updated": now, "nodes": nodes},
            deep=True,
        )
