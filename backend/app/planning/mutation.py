"""Conversational edits: natural-language requests rewrite the whole node list."""

import asyncio
import json
import logging

import httpx
import openai

from backend.app.config import Settings, get_settings
from backend.app.db.repositories import ItineraryRepository
from backend.app.errors import JsonRecoveryError, LLMConfigurationError, StaleItineraryError
from backend.app.llm.client import ChatClient, ChatMessage, chat_json
from backend.app.models.itinerary import ChatHistoryMessage, Itinerary, ItineraryUpdateResult
from backend.app.planning.nodes import build_nodes, normalize_slots, parse_drafts
from backend.app.planning.prompts import JSON_REMINDER, build_mutation_system_prompt
from backend.app.utils.metrics import itinerary_mutation_total

logger = logging.getLogger(__name__)

UPDATED_NODES_KEY = "updatedNodes"
DEFAULT_REPLY = "Got it, your itinerary stays as it is."

FAILURE_REPLIES: dict[str, str] = {
    "timeout": "The request timed out while I was thinking it over. Please try again shortly.",
    "malformed": (
        "My reply came back garbled. Could you describe what you'd like in simpler terms?"
    ),
    "auth": "Authentication with the AI service failed. Please check the configuration.",
    "rate_limit": "Too many requests right now. Please try again in a moment.",
    "upstream": "The AI service is temporarily unavailable. Please try again shortly.",
    "conflict": (
        "Your itinerary was changed elsewhere while I was working on it. "
        "Please take a look and ask again."
    ),
    "generic": "Sorry, I can't process your request right now.",
}


def classify_failure(error: BaseException) -> str:
    """Failure class of an exception raised during a conversational edit."""
    if isinstance(error, StaleItineraryError):
        return "conflict"
    if isinstance(error, (openai.APITimeoutError, httpx.TimeoutException, asyncio.TimeoutError)):
        return "timeout"
    if isinstance(error, (JsonRecoveryError, json.JSONDecodeError)):
        return "malformed"
    if isinstance(error, LLMConfigurationError):
        return "auth"
    if isinstance(error, openai.APIStatusError):
        if error.status_code in (401, 403):
            return "auth"
        if error.status_code == 429:
            return "rate_limit"
        if error.status_code >= 500:
            return "upstream"
        return "generic"

    message = str(error)
    if "timeout" in message.lower() or "ETIMEDOUT" in message:
        return "timeout"
    if "JSON" in message:
        return "malformed"
    if "401" in message or "403" in message:
        return "auth"
    if "429" in message:
        return "rate_limit"
    if any(code in message for code in ("500", "502", "503")):
        return "upstream"
    return "generic"


class ConversationalMutationEngine:
    """Applies a traveler's natural-language request to an itinerary."""

    def __init__(
        self,
        chat_client: ChatClient,
        repository: ItineraryRepository,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self.chat_client = chat_client
        self.repository = repository
        self.temperature = settings.llm_generation_temperature
        self.history_limit = settings.chat_history_limit

    def build_messages(
        self,
        itinerary: Itinerary,
        message: str,
        history: list[ChatHistoryMessage],
    ) -> list[ChatMessage]:
        """System prompt, recent history, then the new message with a JSON reminder."""
        messages: list[ChatMessage] = [
            {"role": "system", "content": build_mutation_system_prompt(itinerary)}
        ]
        recent = history[-self.history_limit :] if self.history_limit > 0 else []
        for turn in recent:
            messages.append(
                {"role": "user" if turn.role == "user" else "assistant", "content": turn.content}
            )
        messages.append({"role": "user", "content": f"{message}\n\n{JSON_REMINDER}"})
        return messages

    async def update(
        self,
        itinerary: Itinerary,
        message: str,
        history: list[ChatHistoryMessage],
    ) -> ItineraryUpdateResult:
        """Apply one request. Never raises.

        A non-empty `updatedNodes` list replaces every node (fresh ids, normal,
        unlit, unverified) and is stored with a version check. Anything else
        leaves the itinerary untouched. Failures return the original itinerary
        with an apology matching the failure class.
        """
        messages = self.build_messages(itinerary, message, history)

        try:
            result = await chat_json(
                self.chat_client,
                messages,
                temperature=self.temperature,
                purpose="update_itinerary",
                array_key=UPDATED_NODES_KEY,
                expect=dict,
            )

            reply = result.get("response")
            if not isinstance(reply, str) or not reply.strip():
                reply = DEFAULT_REPLY

            raw_nodes = result.get(UPDATED_NODES_KEY)
            drafts = parse_drafts(raw_nodes) if isinstance(raw_nodes, list) else []
            if not drafts:
                logger.info(f"No node updates for trip {itinerary.trip_id}")
                itinerary_mutation_total.labels(outcome="unchanged").inc()
                return ItineraryUpdateResult(itinerary=itinerary, response=reply, changed=False)

            nodes = normalize_slots(
                build_nodes(drafts, itinerary_id=itinerary.id, positional_order=True)
            )

            preferences = list(itinerary.user_preferences)
            new_preference = result.get("newPreference")
            if isinstance(new_preference, str) and new_preference.strip():
                preferences.append(new_preference.strip())

            updated = itinerary.model_copy(
                update={
                    "nodes": nodes,
                    "user_preferences": preferences,
                    "total_days": max(itinerary.total_days, *(n.day_index for n in nodes)),
                }
            )
            saved = await self.repository.save_itinerary(
                updated, expected_version=itinerary.version
            )
        except Exception as e:
            category = classify_failure(e)
            logger.error(
                f"Conversational update for trip {itinerary.trip_id} failed ({category}): {e}"
            )
            itinerary_mutation_total.labels(outcome=f"failed_{category}").inc()
            return ItineraryUpdateResult(
                itinerary=itinerary, response=FAILURE_REPLIES[category], changed=False
            )

        itinerary_mutation_total.labels(outcome="changed").inc()
        logger.info(f"Replaced itinerary for trip {itinerary.trip_id} with {len(nodes)} nodes")
        return ItineraryUpdateResult(itinerary=saved, response=reply, changed=True)
