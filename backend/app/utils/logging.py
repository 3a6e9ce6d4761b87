"""Structured logging for generative model calls."""

import logging
from typing import Any

from backend.app.utils.metrics import llm_latency_ms

logger = logging.getLogger(__name__)


class StructuredLLMLogger:
    """Structured logger for model calls."""

    def log_call(
        self,
        model: str,
        purpose: str,
        outcome: str,
        latency_ms: float,
        response_chars: int | None = None,
        finish_reason: str | None = None,
        error_reason: str | None = None,
    ) -> None:
        """Log one model call with structured data and record its latency."""
        log_data: dict[str, Any] = {
            "model": model,
            "purpose": purpose,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if response_chars is not None:
            log_data["response_chars"] = response_chars
        if finish_reason:
            log_data["finish_reason"] = finish_reason
        if error_reason:
            log_data["error_reason"] = error_reason

        llm_latency_ms.labels(purpose=purpose, outcome=outcome).observe(latency_ms)

        log_msg = f"LLM call: {purpose} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
