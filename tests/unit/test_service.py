"""Tests for the itinerary service facade."""

import json
import math

import httpx
import pytest
import pytest_asyncio

from backend.app.models.common import NodeStatus, NodeType
from backend.app.models.conditions import SearchConditions
from backend.app.models.itinerary import OutcomeStatus
from backend.app.models.poi import PlaceVerification
from backend.app.planning.lifecycle import default_replacement_description
from backend.app.planning.service import (
    UNVERIFIABLE_INFO,
    VERIFICATION_UNAVAILABLE_INFO,
    ItineraryService,
)


@pytest_asyncio.fixture
async def stored(repository, make_node, make_itinerary):
    nodes = [
        make_node(id="a", name="West Lake", day_index=1, order=1.0, description="Lakeside walk"),
        make_node(id="b", name="Spicy House", type=NodeType.restaurant, day_index=1, order=2.0),
        make_node(id="c", name="Lingyin Temple", day_index=2, order=1.0),
    ]
    return await repository.save_itinerary(make_itinerary(nodes=nodes))


def _service(chat, provider, repository, settings) -> ItineraryService:
    return ItineraryService(chat, provider, repository, settings=settings)


@pytest.mark.asyncio
async def test_generate_itinerary_stores_and_returns_plan(
    fake_chat_client, fake_poi_provider, repository, settings
) -> None:
    chat = fake_chat_client(json.dumps([{"name": "West Lake", "dayIndex": 1}]))
    service = _service(chat, fake_poi_provider(), repository, settings)

    itinerary = await service.generate_itinerary("trip-9", "Hangzhou", SearchConditions(), 1)

    assert await service.get_itinerary("trip-9") == itinerary
    assert [n.name for n in itinerary.nodes] == ["West Lake"]


@pytest.mark.asyncio
async def test_manual_update_accepts_camel_case_and_ignores_protected_fields(
    fake_chat_client, fake_poi_provider, repository, settings, stored
) -> None:
    service = _service(fake_chat_client(), fake_poi_provider(), repository, settings)

    node = await service.manual_update_node(
        "trip-1",
        "b",
        {
            "scheduledTime": "12:30",
            "price_info": "¥60 per person",
            "type": "餐饮",
            "id": "hijacked",
            "nodeStatus": "changed",
            "parentNodeId": "a",
            "itineraryId": "other",
        },
    )

    assert node is not None
    assert node.id == "b"
    assert node.scheduled_time == "12:30"
    assert node.price_info == "¥60 per person"
    assert node.type == NodeType.restaurant
    assert node.node_status == NodeStatus.normal
    assert node.parent_node_id is None
    assert node.itinerary_id == "itin-1"

    saved = (await repository.get_itinerary("trip-1")).find_node("b")
    assert saved == node


@pytest.mark.asyncio
async def test_manual_update_can_light_but_never_unlight(
    fake_chat_client, fake_poi_provider, repository, settings, stored
) -> None:
    service = _service(fake_chat_client(), fake_poi_provider(), repository, settings)

    lit = await service.manual_update_node("trip-1", "a", {"isLit": True})
    again = await service.manual_update_node("trip-1", "a", {"is_lit": False, "tips": "Go early"})

    assert lit.is_lit is True
    assert again.is_lit is True
    assert again.tips == "Go early"


@pytest.mark.asyncio
async def test_manual_update_rejects_taken_slot(
    fake_chat_client, fake_poi_provider, repository, settings, stored
) -> None:
    service = _service(fake_chat_client(), fake_poi_provider(), repository, settings)

    assert await service.manual_update_node("trip-1", "a", {"order": 2.0}) is None
    assert await service.manual_update_node("trip-1", "a", {"order": 1.5}) is not None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "updates",
    [{"estimatedDuration": "long"}, {"dayIndex": 0}, {"order": -1}],
)
async def test_manual_update_rejects_invalid_values(
    fake_chat_client, fake_poi_provider, repository, settings, stored, updates
) -> None:
    service = _service(fake_chat_client(), fake_poi_provider(), repository, settings)

    assert await service.manual_update_node("trip-1", "a", updates) is None
    assert await repository.get_itinerary("trip-1") == stored


@pytest.mark.asyncio
async def test_manual_update_rejects_day_outside_trip(
    fake_chat_client, fake_poi_provider, repository, settings, stored
) -> None:
    service = _service(fake_chat_client(), fake_poi_provider(), repository, settings)

    assert await service.manual_update_node("trip-1", "c", {"dayIndex": 7}) is None
    assert await repository.get_itinerary("trip-1") == stored

    moved = await service.manual_update_node("trip-1", "c", {"dayIndex": 1, "order": 3})
    assert (moved.day_index, moved.order) == (1, 3.0)


@pytest.mark.asyncio
async def test_manual_update_of_unknown_node_returns_none(
    fake_chat_client, fake_poi_provider, repository, settings, stored
) -> None:
    service = _service(fake_chat_client(), fake_poi_provider(), repository, settings)

    assert await service.manual_update_node("trip-1", "ghost", {"name": "x"}) is None
    assert await service.manual_update_node("trip-404", "a", {"name": "x"}) is None


@pytest.mark.asyncio
async def test_change_itinerary_uses_generated_description(
    fake_chat_client, fake_poi_provider, repository, settings, stored
) -> None:
    chat = fake_chat_client("  A quiet seafood spot by the canal.  ")
    service = _service(chat, fake_poi_provider(), repository, settings)

    outcome = await service.change_itinerary("trip-1", "b", "Canal Seafood", "too spicy")

    assert outcome.ok
    original, new = outcome.nodes
    assert original.node_status == NodeStatus.changed_original
    assert new.parent_node_id == "b"
    assert new.description == "A quiet seafood spot by the canal."

    call = chat.calls[0]
    assert call["purpose"] == "describe_replacement"
    assert call["temperature"] == settings.llm_chat_temperature
    assert "Spicy House" in call["messages"][1]["content"]
    assert "too spicy" in call["messages"][1]["content"]


@pytest.mark.asyncio
async def test_change_itinerary_falls_back_to_default_description(
    fake_chat_client, fake_poi_provider, repository, settings, stored
) -> None:
    chat = fake_chat_client(TimeoutError("slow model"))
    service = _service(chat, fake_poi_provider(), repository, settings)

    outcome = await service.change_itinerary("trip-1", "b", "Canal Seafood", "too spicy")

    assert outcome.ok
    assert outcome.nodes[1].description == default_replacement_description("Canal Seafood")


@pytest.mark.asyncio
async def test_change_itinerary_reports_failures_without_model_call(
    fake_chat_client, fake_poi_provider, repository, settings, stored
) -> None:
    chat = fake_chat_client("A description", "unused")
    service = _service(chat, fake_poi_provider(), repository, settings)
    await service.change_itinerary("trip-1", "b", "Canal Seafood", "too spicy")

    missing = await service.change_itinerary("trip-1", "ghost", "X", "y")
    illegal = await service.change_itinerary("trip-1", "b", "Noodle Bar", "again")

    assert missing.status == OutcomeStatus.not_found
    assert illegal.status == OutcomeStatus.illegal_transition
    assert illegal.nodes == []
    assert len(chat.calls) == 1


@pytest.mark.asyncio
async def test_change_itinerary_after_crowding_order_edit_is_illegal(
    fake_chat_client, fake_poi_provider, repository, settings, stored
) -> None:
    chat = fake_chat_client("Calm boat ride.")
    service = _service(chat, fake_poi_provider(), repository, settings)
    squeezed = {"order": math.nextafter(1.0, 2.0)}
    crowded = await service.manual_update_node("trip-1", "b", squeezed)
    before = await repository.get_itinerary("trip-1")

    outcome = await service.change_itinerary("trip-1", "a", "Broken Bridge", "crowded")

    assert crowded is not None
    assert outcome.status == OutcomeStatus.illegal_transition
    assert outcome.nodes == []
    assert await repository.get_itinerary("trip-1") == before


@pytest.mark.asyncio
async def test_mark_as_unrealized_outcomes(
    fake_chat_client, fake_poi_provider, repository, settings, stored
) -> None:
    service = _service(fake_chat_client(), fake_poi_provider(), repository, settings)

    done = await service.mark_as_unrealized("trip-1", "c", "closed")
    repeat = await service.mark_as_unrealized("trip-1", "c", "closed")

    assert done.ok
    assert done.nodes[0].node_status == NodeStatus.unrealized
    assert repeat.status == OutcomeStatus.illegal_transition


@pytest.mark.asyncio
async def test_light_node_dispatches_on_status(
    fake_chat_client, fake_poi_provider, repository, settings, stored
) -> None:
    service = _service(fake_chat_client("Fresh fish."), fake_poi_provider(), repository, settings)
    change = await service.change_itinerary("trip-1", "b", "Canal Seafood", "too spicy")
    replacement_id = change.nodes[1].id

    normal = await service.light_node("trip-1", "a")
    changed = await service.light_node("trip-1", replacement_id)
    retired = await service.light_node("trip-1", "b")
    missing = await service.light_node("trip-404", "a")

    assert normal.ok
    assert [n.id for n in normal.nodes] == ["a"]
    assert normal.nodes[0].is_lit is True
    assert changed.ok
    assert [n.id for n in changed.nodes] == [replacement_id, "b"]
    assert changed.nodes[0].is_lit is True
    assert retired.status == OutcomeStatus.illegal_transition
    assert missing.status == OutcomeStatus.not_found


@pytest.mark.asyncio
async def test_update_with_preference_delegates_to_mutation(
    fake_chat_client, fake_poi_provider, repository, settings, stored
) -> None:
    chat = fake_chat_client('{"response": "Sounds good.", "updatedNodes": null}')
    service = _service(chat, fake_poi_provider(), repository, settings)

    result = await service.update_with_preference(stored, "Looks great", [])

    assert result.response == "Sounds good."
    assert result.changed is False


class _Verifier:
    def __init__(self, result: PlaceVerification | Exception):
        self.result = result
        self.calls: list[tuple[str, str]] = []

    async def verify(self, name: str, city: str) -> PlaceVerification:
        self.calls.append((name, city))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.mark.asyncio
async def test_verify_node_records_found_details(
    fake_chat_client, fake_poi_provider, repository, settings, stored
) -> None:
    verifier = _Verifier(
        PlaceVerification(exists=True, address="1 Fayun Lane", rating=4.7)
    )
    service = ItineraryService(
        fake_chat_client(), fake_poi_provider(), repository, settings, place_verifier=verifier
    )
    node = stored.find_node("c")

    verified = await service.verify_node(node, "Hangzhou")

    assert verifier.calls == [("Lingyin Temple", "Hangzhou")]
    assert verified.id == "c"
    assert verified.verified is True
    assert verified.verification_info == (
        "Address: 1 Fayun Lane, opening hours: unknown, rating: 4.7"
    )
    assert await repository.get_itinerary("trip-1") == stored


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "result, info",
    [
        (PlaceVerification(exists=False), UNVERIFIABLE_INFO),
        (httpx.ConnectError("connection refused"), VERIFICATION_UNAVAILABLE_INFO),
    ],
)
async def test_verify_node_never_raises(
    fake_chat_client, fake_poi_provider, repository, settings, stored, result, info
) -> None:
    service = ItineraryService(
        fake_chat_client(),
        fake_poi_provider(),
        repository,
        settings,
        place_verifier=_Verifier(result),
    )

    checked = await service.verify_node(stored.find_node("a"), "Hangzhou")

    assert checked.verified is False
    assert checked.verification_info == info


@pytest.mark.asyncio
async def test_verify_node_without_verifier_is_unavailable(
    fake_chat_client, fake_poi_provider, repository, settings, make_node
) -> None:
    service = _service(fake_chat_client(), fake_poi_provider(), repository, settings)

    checked = await service.verify_node(make_node(verified=True), "Hangzhou")

    assert checked.verified is False
    assert checked.verification_info == VERIFICATION_UNAVAILABLE_INFO
