"""Tests for the Tavily place verifier."""

import json
from unittest.mock import patch

import httpx
import pytest

from backend.app.adapters.tavily import (
    TavilyPlaceVerifier,
    extract_verification,
    get_place_verifier,
)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_verify_posts_search_and_extracts_details() -> None:
    """Verifier posts one basic search and parses the snippets."""
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(
            200,
            json={
                "query": "Lingyin Temple Hangzhou",
                "results": [
                    {
                        "title": "Lingyin Temple",
                        "url": "https://example.com/lingyin",
                        "content": "Address: 1 Fayun Lane\nOpening hours: 07:00-18:00\n"
                        "Rated 4.7/5 by visitors",
                        "score": 0.9,
                    },
                    {
                        "title": "Guide",
                        "url": "https://example.com/guide",
                        "content": "灵隐寺 4.8分",
                    },
                ],
            },
        )

    verifier = TavilyPlaceVerifier(api_key="tv-key", max_results=3, client=_client(handler))

    found = await verifier.verify("Lingyin Temple", "Hangzhou")

    request = captured[0]
    assert request.method == "POST"
    assert request.url.path == "/search"
    body = json.loads(request.content)
    assert body["api_key"] == "tv-key"
    assert body["max_results"] == 3
    assert body["search_depth"] == "basic"
    assert body["query"].startswith("Lingyin Temple Hangzhou")

    assert found.exists is True
    assert found.address == "1 Fayun Lane"
    assert found.opening_hours == "07:00-18:00"
    assert found.rating == 4.7
    assert found.description.startswith("Address: 1 Fayun Lane")


@pytest.mark.asyncio
async def test_verify_with_no_results_reports_missing_place() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"results": []})

    verifier = TavilyPlaceVerifier(api_key="k", client=_client(handler))

    found = await verifier.verify("Imaginary Palace", "Hangzhou")

    assert found.exists is False
    assert found.address is None


@pytest.mark.asyncio
async def test_verify_raises_on_http_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"detail": "Unauthorized"})

    verifier = TavilyPlaceVerifier(api_key="bad", client=_client(handler))

    with pytest.raises(httpx.HTTPStatusError):
        await verifier.verify("West Lake", "Hangzhou")


def test_extract_verification_reads_chinese_labels() -> None:
    found = extract_verification(
        [{"content": "地址：西湖区龙井路1号，营业时间：08:00-17:00。评分 4.6分"}],
    )

    assert found.exists is True
    assert found.address == "西湖区龙井路1号"
    assert found.opening_hours == "08:00-17:00"
    assert found.rating == 4.6


def test_extract_verification_without_details_still_exists() -> None:
    found = extract_verification([{"title": "West Lake", "content": "A famous lake."}])

    assert found.exists is True
    assert (found.address, found.opening_hours, found.rating) == (None, None, None)
    assert found.description == "A famous lake."


def test_get_place_verifier_uses_settings(settings) -> None:
    configured = settings.model_copy(
        update={"tavily_api_key": "tv-key", "verification_max_results": 5}
    )

    with patch("backend.app.adapters.tavily.get_settings", return_value=configured):
        verifier = get_place_verifier()

    assert verifier.api_key == "tv-key"
    assert verifier.max_results == 5
    assert verifier.base_url == "https://api.tavily.com"
