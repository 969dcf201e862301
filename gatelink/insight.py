"""
Usage insight collaborator.

Turns today's visit summary into a one- or two-sentence tip via an OpenAI
chat model. Only called when the operator asks for it; failures surface as
ServiceError and the caller shows a static fallback instead.

The ``openai`` package is an optional dependency (``pip install
gatelink[insight]``). It is imported on first use.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from .errors import MissingCredentialError, ServiceError, ServiceUnavailableError
from .interfaces import InsightServiceInterface

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"

MISSING_KEY_MESSAGE = "API key missing. Set API_KEY (or OPENAI_API_KEY) in your environment."
UNAVAILABLE_MESSAGE = "Unable to reach the insight service right now. Try again later."
NO_INSIGHT_MESSAGE = "No insights available at this time."

SYSTEM_PROMPT = "You are an expert pet health and behavior assistant for a snack-dispensing gate."


def build_insight_prompt(
    count_today: int,
    limit: int,
    lock_duration_minutes: int,
    recent_log_lines: List[str],
) -> str:
    recent = " | ".join(recent_log_lines) if recent_log_lines else "none"
    return (
        "Analyze these recent activity metrics:\n"
        f"- Current pet visits today: {count_today}\n"
        f"- Daily limit set: {limit}\n"
        f"- Lockout duration after the limit: {lock_duration_minutes} minutes\n"
        f"- Recent logs: {recent}\n\n"
        "Provide a very short, supportive tip (max 2 sentences) about the pet's "
        "snacking frequency or health."
    )


def fallback_message(error: ServiceError) -> str:
    """Static text shown to the operator when insight generation fails."""
    if isinstance(error, MissingCredentialError):
        return MISSING_KEY_MESSAGE
    return UNAVAILABLE_MESSAGE


class OpenAIInsightService(InsightServiceInterface):
    """Insight service backed by the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        client: Any = None,
    ):
        self._api_key = api_key
        self._model = model
        self._base_url = base_url
        self._timeout = timeout
        self._client = client

    def generate(
        self,
        count_today: int,
        limit: int,
        lock_duration_minutes: int,
        recent_log_lines: List[str],
    ) -> str:
        client = self._get_client()
        prompt = build_insight_prompt(count_today, limit, lock_duration_minutes, recent_log_lines)
        try:
            response = client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=120,
            )
            text = response.choices[0].message.content
        except Exception as e:
            logger.warning("Insight request failed: %s", e)
            raise ServiceUnavailableError(str(e)) from e
        return (text or "").strip() or NO_INSIGHT_MESSAGE

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client
        if not self._api_key:
            raise MissingCredentialError(MISSING_KEY_MESSAGE)
        try:
            from openai import OpenAI
        except ImportError as e:
            raise ServiceUnavailableError(
                "openai package not installed. Install with: pip install gatelink[insight]"
            ) from e
        self._client = OpenAI(api_key=self._api_key, base_url=self._base_url, timeout=self._timeout)
        return self._client
