"""Node lifecycle: change, unrealize, and light transitions.

Transitions start from a `normal` node only:

    normal --change-->     changed_original (lit) + new `changed` child
    normal --unrealize-->  unrealized (lit), no child
    normal --light-->      normal (lit)
    changed --light-->     changed (lit)

A replacement points at the node it replaces via `parent_node_id`; the
retired node references nothing. Lit nodes are never unlit.
"""

import logging
import uuid

from backend.app.db.repositories import ItineraryRepository
from backend.app.errors import IllegalTransitionError, NodeNotFoundError
from backend.app.models.common import NodeStatus
from backend.app.models.itinerary import Itinerary, NodeChangeResult, TravelNode
from backend.app.planning.ordering import order_after

logger = logging.getLogger(__name__)


def default_replacement_description(new_destination: str) -> str:
    return f"Changed destination: {new_destination}"


class NodeLifecycleEngine:
    """Applies lifecycle transitions to stored itineraries."""

    def __init__(self, repository: ItineraryRepository):
        self.repository = repository

    async def _load(self, trip_id: str, node_id: str) -> tuple[Itinerary, TravelNode]:
        itinerary = await self.repository.get_itinerary(trip_id)
        if itinerary is None:
            raise NodeNotFoundError(trip_id, node_id)
        node = itinerary.find_node(node_id)
        if node is None:
            raise NodeNotFoundError(trip_id, node_id)
        return itinerary, node

    async def _store(self, itinerary: Itinerary, nodes: list[TravelNode]) -> None:
        await self.repository.save_itinerary(
            itinerary.model_copy(update={"nodes": nodes}),
            expected_version=itinerary.version,
        )

    async def change_node(
        self,
        trip_id: str,
        node_id: str,
        new_destination: str,
        reason: str,
        description: str | None = None,
    ) -> NodeChangeResult:
        """Retire a node and insert its replacement right after it.

        Args:
            trip_id: Trip owning the node
            node_id: Node to replace
            new_destination: Name of the replacement stop
            reason: Why the plan changed (stored on both nodes)
            description: Replacement description; a default is used when None

        Returns:
            The retired original and the new node

        Raises:
            NodeNotFoundError: If the trip or node does not exist
            IllegalTransitionError: If the node is not `normal`, no destination is given,
                or no order key is free after it
            StaleItineraryError: If the itinerary changed concurrently
        """
        itinerary, original = await self._load(trip_id, node_id)

        if original.node_status != NodeStatus.normal:
            raise IllegalTransitionError(
                f"Node {node_id} is {original.node_status.value}; only normal nodes can be changed"
            )
        new_destination = new_destination.strip()
        if not new_destination:
            raise IllegalTransitionError("A change requires a new destination")

        sibling_orders = [
            n.order
            for n in itinerary.nodes_for_day(original.day_index)
            if n.id != node_id
        ]
        try:
            order = order_after(original.order, sibling_orders)
        except ValueError as e:
            raise IllegalTransitionError(f"No room to insert after node {node_id}: {e}") from e

        retired = original.model_copy(
            update={
                "node_status": NodeStatus.changed_original,
                "status_reason": reason,
                "is_lit": True,
            }
        )
        replacement = TravelNode(
            id=str(uuid.uuid4()),
            itinerary_id=itinerary.id,
            name=new_destination,
            type=original.type,
            address="",
            description=description or default_replacement_description(new_destination),
            activity=f"Changed: {new_destination}",
            time_slot=original.time_slot,
            estimated_duration=original.estimated_duration,
            scheduled_time=original.scheduled_time,
            day_index=original.day_index,
            order=order,
            verified=False,
            is_lit=False,
            node_status=NodeStatus.changed,
            status_reason=reason,
            parent_node_id=original.id,
        )

        nodes = [retired if n.id == node_id else n for n in itinerary.nodes]
        nodes.append(replacement)
        await self._store(itinerary, nodes)

        logger.info(f"Changed node {original.name!r} to {new_destination!r} ({reason})")
        return NodeChangeResult(original_node=retired, new_node=replacement)

    async def mark_unrealized(self, trip_id: str, node_id: str, reason: str) -> TravelNode:
        """Record that a pending stop did not happen.

        Raises:
            NodeNotFoundError: If the trip or node does not exist
            IllegalTransitionError: If the node is not `normal` or is already lit
            StaleItineraryError: If the itinerary changed concurrently
        """
        itinerary, node = await self._load(trip_id, node_id)

        if node.node_status != NodeStatus.normal:
            raise IllegalTransitionError(
                f"Node {node_id} is {node.node_status.value}; only normal nodes can be unrealized"
            )
        if node.is_lit:
            raise IllegalTransitionError(f"Node {node_id} is already recorded")

        updated = node.model_copy(
            update={"node_status": NodeStatus.unrealized, "status_reason": reason, "is_lit": True}
        )
        await self._store(itinerary, [updated if n.id == node_id else n for n in itinerary.nodes])

        logger.info(f"Marked node {node.name!r} unrealized ({reason})")
        return updated

    async def light_node(self, trip_id: str, node_id: str) -> TravelNode:
        """Mark a normal node as recorded.

        Raises:
            NodeNotFoundError: If the trip or node does not exist
            IllegalTransitionError: If the node is not `normal`
        """
        itinerary, node = await self._load(trip_id, node_id)
        if node.node_status != NodeStatus.normal:
            raise IllegalTransitionError(
                f"Node {node_id} is {node.node_status.value}; use the matching transition"
            )
        return await self._light(itinerary, node)

    async def light_changed_node(
        self, trip_id: str, node_id: str
    ) -> tuple[TravelNode, TravelNode | None]:
        """Mark a replacement node as recorded.

        Returns:
            The lit node and the node it replaced (None if the parent is missing)

        Raises:
            NodeNotFoundError: If the trip or node does not exist
            IllegalTransitionError: If the node is not `changed`
        """
        itinerary, node = await self._load(trip_id, node_id)
        if node.node_status != NodeStatus.changed:
            raise IllegalTransitionError(
                f"Node {node_id} is {node.node_status.value}, not a changed node"
            )
        lit = await self._light(itinerary, node)
        parent = itinerary.find_node(node.parent_node_id) if node.parent_node_id else None
        return lit, parent

    async def _light(self, itinerary: Itinerary, node: TravelNode) -> TravelNode:
        if node.is_lit:
            return node
        lit = node.model_copy(update={"is_lit": True})
        await self._store(itinerary, [lit if n.id == node.id else n for n in itinerary.nodes])
        return lit
