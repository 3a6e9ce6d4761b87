"""Chat client for the generative model (OpenAI-compatible API).

Security: Reads API key from environment only, never hardcoded.
"""

import logging
import time
from typing import Any, Protocol

from openai import AsyncOpenAI

from backend.app.config import get_settings
from backend.app.errors import LLMConfigurationError
from backend.app.llm.recovery import recover_json
from backend.app.utils.logging import StructuredLLMLogger

logger = logging.getLogger(__name__)

ChatMessage = dict[str, str]


class ChatClient(Protocol):
    """Protocol for chat completion clients."""

    async def chat(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float,
        purpose: str = "chat",
    ) -> str:
        """Send role/content turns and return the text of the reply.

        Args:
            messages: Ordered system/user/assistant turns
            temperature: Sampling temperature
            purpose: Label for logs and latency metrics

        Returns:
            Reply text (may be empty)
        """
        ...


class OpenAIChatClient:
    """Chat client backed by the openai SDK (DeepSeek by default)."""

    def __init__(
        self,
        api_key: str,
        model: str = "deepseek-chat",
        base_url: str | None = None,
        timeout: float = 300.0,
        max_tokens: int = 8192,
    ):
        """Initialize the client.

        Args:
            api_key: Provider API key (read from environment)
            model: Model name
            base_url: OpenAI-compatible endpoint; None means the SDK default
            timeout: Request timeout in seconds
            max_tokens: Completion token ceiling
        """
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)
        self.model = model
        self.max_tokens = max_tokens
        self._llm_logger = StructuredLLMLogger()

    async def chat(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float,
        purpose: str = "chat",
    ) -> str:
        start = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,  # type: ignore[arg-type]
                temperature=temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            self._llm_logger.log_call(
                model=self.model,
                purpose=purpose,
                outcome="error",
                latency_ms=(time.perf_counter() - start) * 1000,
                error_reason=f"{type(e).__name__}: {e}",
            )
            raise

        choice = response.choices[0]
        content = choice.message.content or ""
        finish_reason = choice.finish_reason if isinstance(choice.finish_reason, str) else None

        if finish_reason == "length":
            logger.warning(
                f"Model reply for '{purpose}' hit the token limit ({self.max_tokens}); "
                "output is truncated"
            )

        self._llm_logger.log_call(
            model=self.model,
            purpose=purpose,
            outcome="success",
            latency_ms=(time.perf_counter() - start) * 1000,
            response_chars=len(content),
            finish_reason=finish_reason,
        )
        return content


def get_chat_client() -> ChatClient:
    """Build the configured chat client.

    Raises:
        LLMConfigurationError: If no API key is configured
    """
    settings = get_settings()
    api_key = settings.llm_api_key

    if not api_key or not api_key.get_secret_value():
        raise LLMConfigurationError("LLM_API_KEY is not configured")

    logger.info(f"Using chat model {settings.llm_model} at {settings.llm_base_url}")
    return OpenAIChatClient(
        api_key=api_key.get_secret_value(),
        model=settings.llm_model,
        base_url=settings.llm_base_url,
        timeout=settings.llm_timeout_seconds,
        max_tokens=settings.llm_max_tokens,
    )


async def chat_json(
    client: ChatClient,
    messages: list[ChatMessage],
    *,
    temperature: float,
    purpose: str,
    array_key: str | None = None,
    expect: type | None = None,
) -> Any:
    """Chat and recover a JSON value from the reply.

    Raises:
        JsonRecoveryError: If the reply holds no recoverable JSON
    """
    text = await client.chat(messages, temperature=temperature, purpose=purpose)
    return recover_json(text, array_key=array_key, expect=expect)
