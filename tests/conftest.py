"""Shared pytest fixtures for all test suites."""

import os
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

from backend.app.config import Settings
from backend.app.db.inmemory import InMemoryItineraryRepository
from backend.app.db.models import Base
from backend.app.models.common import NodeType, PoiCategory
from backend.app.models.itinerary import Itinerary, TravelNode
from backend.app.models.poi import CandidatePOI


class FakeChatClient:
    """Chat client returning scripted replies (or raising scripted errors) in order."""

    def __init__(self, *replies: str | Exception):
        self.replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    async def chat(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float,
        purpose: str = "chat",
    ) -> str:
        self.calls.append({"messages": messages, "temperature": temperature, "purpose": purpose})
        if not self.replies:
            raise RuntimeError("FakeChatClient has no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakePoiProvider:
    """POI provider answering from a (category, keywords) table and recording calls."""

    def __init__(
        self,
        results: dict[tuple[PoiCategory, str | None], list[CandidatePOI]] | None = None,
        errors: dict[PoiCategory, Exception] | None = None,
    ):
        self.results = results or {}
        self.errors = errors or {}
        self.calls: list[dict[str, Any]] = []

    async def search(
        self,
        city: str,
        category: PoiCategory,
        *,
        keywords: str | None = None,
        types: str | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> list[CandidatePOI]:
        self.calls.append(
            {
                "city": city,
                "category": category,
                "keywords": keywords,
                "types": types,
                "page_size": page_size,
            }
        )
        if category in self.errors:
            raise self.errors[category]
        return list(self.results.get((category, keywords), []))


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults, independent of the environment's API keys."""
    return Settings(llm_api_key=None, amap_api_key="")


@pytest.fixture
def fake_chat_client() -> Callable[..., FakeChatClient]:
    """Factory: fake_chat_client(reply1, reply2, ...)."""
    return FakeChatClient


@pytest.fixture
def fake_poi_provider() -> Callable[..., FakePoiProvider]:
    """Factory: fake_poi_provider(results=..., errors=...)."""
    return FakePoiProvider


@pytest.fixture
def repository() -> InMemoryItineraryRepository:
    return InMemoryItineraryRepository()


@pytest.fixture
def make_poi() -> Callable[..., CandidatePOI]:
    def _make(name: str, category: PoiCategory = PoiCategory.attraction, **kwargs: Any):
        defaults: dict[str, Any] = {
            "address": f"{name} Road 1",
            "description": f"rating 4.5, about {name}",
            "location": "120.15,30.25",
        }
        return CandidatePOI(name=name, category=category, **{**defaults, **kwargs})

    return _make


@pytest.fixture
def make_node() -> Callable[..., TravelNode]:
    counter = {"n": 0}

    def _make(**overrides: Any) -> TravelNode:
        counter["n"] += 1
        fields: dict[str, Any] = {
            "id": f"node-{counter['n']}",
            "itinerary_id": "itin-1",
            "name": f"Stop {counter['n']}",
            "type": NodeType.attraction,
            "day_index": 1,
            "order": float(counter["n"]),
        }
        fields.update(overrides)
        return TravelNode(**fields)

    return _make


@pytest.fixture
def make_itinerary() -> Callable[..., Itinerary]:
    def _make(nodes: list[TravelNode] | None = None, **overrides: Any) -> Itinerary:
        fields: dict[str, Any] = {
            "id": "itin-1",
            "trip_id": "trip-1",
            "destination": "Hangzhou",
            "total_days": 2,
            "nodes": nodes or [],
        }
        fields.update(overrides)
        return Itinerary(**fields)

    return _make


@pytest_asyncio.fixture
async def sqlite_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine shared by all sessions of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def sqlite_session_factory(
    sqlite_engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=sqlite_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def postgres_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine for PostgreSQL integration tests.

    Requires DATABASE_URL to be set to a real PostgreSQL connection string.
    Tests using this fixture should be marked with @pytest.mark.postgres.
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set - skipping postgres test")

    # Ensure it's a postgres URL
    if not database_url.startswith(("postgresql://", "postgresql+asyncpg://")):
        pytest.skip(f"DATABASE_URL is not PostgreSQL: {database_url}")

    # Convert to async driver if needed
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine = create_async_engine(database_url, poolclass=NullPool, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()
