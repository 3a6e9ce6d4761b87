"""Tests for the chat client.

All tests are deterministic and do not make real network calls.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import SecretStr

from backend.app.errors import JsonRecoveryError, LLMConfigurationError
from backend.app.llm.client import OpenAIChatClient, chat_json, get_chat_client


def _mock_response(content: str | None, finish_reason: str = "stop") -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    response.choices[0].finish_reason = finish_reason
    return response


@pytest.mark.asyncio
async def test_chat_sends_messages_and_returns_text() -> None:
    """Client forwards turns, temperature and token ceiling to the SDK."""
    mock_openai_client = AsyncMock()
    mock_openai_client.chat.completions.create = AsyncMock(
        return_value=_mock_response('[{"name": "West Lake"}]')
    )

    client = OpenAIChatClient(api_key="test_key", model="deepseek-chat", max_tokens=4096)
    client.client = mock_openai_client

    messages = [
        {"role": "system", "content": "You plan trips."},
        {"role": "user", "content": "Two days in Hangzhou"},
    ]
    text = await client.chat(messages, temperature=0.3, purpose="generate_itinerary")

    assert text == '[{"name": "West Lake"}]'
    kwargs = mock_openai_client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "deepseek-chat"
    assert kwargs["messages"] == messages
    assert kwargs["temperature"] == 0.3
    assert kwargs["max_tokens"] == 4096


@pytest.mark.asyncio
async def test_chat_returns_empty_string_for_none_content() -> None:
    mock_openai_client = AsyncMock()
    mock_openai_client.chat.completions.create = AsyncMock(return_value=_mock_response(None))

    client = OpenAIChatClient(api_key="test_key")
    client.client = mock_openai_client

    assert await client.chat([{"role": "user", "content": "hi"}], temperature=0.7) == ""


@pytest.mark.asyncio
async def test_chat_warns_when_reply_is_truncated() -> None:
    mock_openai_client = AsyncMock()
    mock_openai_client.chat.completions.create = AsyncMock(
        return_value=_mock_response('[{"name": "West', finish_reason="length")
    )

    client = OpenAIChatClient(api_key="test_key")
    client.client = mock_openai_client

    with patch("backend.app.llm.client.logger") as mock_logger:
        await client.chat([{"role": "user", "content": "hi"}], temperature=0.3)

    mock_logger.warning.assert_called_once()
    assert "token limit" in mock_logger.warning.call_args[0][0]


@pytest.mark.asyncio
async def test_chat_logs_and_reraises_api_errors() -> None:
    mock_openai_client = AsyncMock()
    mock_openai_client.chat.completions.create = AsyncMock(side_effect=Exception("API error"))

    client = OpenAIChatClient(api_key="test_key")
    client.client = mock_openai_client
    client._llm_logger = MagicMock()

    with pytest.raises(Exception, match="API error"):
        await client.chat([{"role": "user", "content": "hi"}], temperature=0.3, purpose="x")

    log_kwargs = client._llm_logger.log_call.call_args.kwargs
    assert log_kwargs["outcome"] == "error"
    assert log_kwargs["purpose"] == "x"
    assert "API error" in log_kwargs["error_reason"]


def test_get_chat_client_requires_api_key() -> None:
    with patch("backend.app.llm.client.get_settings") as mock_settings:
        mock_settings.return_value.llm_api_key = None

        with pytest.raises(LLMConfigurationError):
            get_chat_client()


def test_get_chat_client_uses_configured_model() -> None:
    with patch("backend.app.llm.client.get_settings") as mock_settings:
        settings = mock_settings.return_value
        settings.llm_api_key = SecretStr("test_key")
        settings.llm_model = "deepseek-chat"
        settings.llm_base_url = "https://api.deepseek.com"
        settings.llm_timeout_seconds = 300.0
        settings.llm_max_tokens = 8192

        client = get_chat_client()

    assert isinstance(client, OpenAIChatClient)
    assert client.model == "deepseek-chat"
    assert client.max_tokens == 8192


@pytest.mark.asyncio
async def test_chat_json_recovers_fenced_reply(fake_chat_client) -> None:
    chat = fake_chat_client('```json\n{"response": "ok", "updatedNodes": null}\n```')

    value = await chat_json(
        chat,
        [{"role": "user", "content": "hi"}],
        temperature=0.3,
        purpose="update_itinerary",
        array_key="updatedNodes",
        expect=dict,
    )

    assert value == {"response": "ok", "updatedNodes": None}
    assert chat.calls[0]["purpose"] == "update_itinerary"


@pytest.mark.asyncio
async def test_chat_json_raises_on_unrecoverable_reply(fake_chat_client) -> None:
    chat = fake_chat_client("no json here")

    with pytest.raises(JsonRecoveryError):
        await chat_json(chat, [], temperature=0.3, purpose="generate_itinerary", expect=list)
