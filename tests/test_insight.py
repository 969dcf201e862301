"""Tests for gatelink.insight with a fake OpenAI client."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from gatelink.errors import MissingCredentialError, ServiceUnavailableError
from gatelink.insight import (
    MISSING_KEY_MESSAGE,
    NO_INSIGHT_MESSAGE,
    UNAVAILABLE_MESSAGE,
    OpenAIInsightService,
    build_insight_prompt,
    fallback_message,
)


def _client(content):
    client = MagicMock()
    message = SimpleNamespace(content=content)
    client.chat.completions.create.return_value = SimpleNamespace(
        choices=[SimpleNamespace(message=message)]
    )
    return client


def test_prompt_includes_metrics():
    prompt = build_insight_prompt(3, 5, 2, ["10:00:00: Device: LOCKED"])
    assert "visits today: 3" in prompt
    assert "Daily limit set: 5" in prompt
    assert "2 minutes" in prompt
    assert "Device: LOCKED" in prompt


def test_prompt_without_logs():
    assert "Recent logs: none" in build_insight_prompt(0, 5, 2, [])


def test_generate_returns_model_text():
    client = _client("  Spread snacks through the day.  ")
    service = OpenAIInsightService(client=client, model="test-model")
    assert service.generate(2, 5, 2, []) == "Spread snacks through the day."
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["messages"][1]["role"] == "user"


def test_empty_reply():
    service = OpenAIInsightService(client=_client(None))
    assert service.generate(0, 5, 2, []) == NO_INSIGHT_MESSAGE


def test_api_failure_becomes_unavailable():
    client = MagicMock()
    client.chat.completions.create.side_effect = RuntimeError("502 Bad Gateway")
    service = OpenAIInsightService(client=client)
    with pytest.raises(ServiceUnavailableError, match="502"):
        service.generate(0, 5, 2, [])


def test_missing_key():
    with pytest.raises(MissingCredentialError):
        OpenAIInsightService(api_key=None).generate(0, 5, 2, [])


def test_fallback_messages():
    assert fallback_message(MissingCredentialError("x")) == MISSING_KEY_MESSAGE
    assert fallback_message(ServiceUnavailableError("x")) == UNAVAILABLE_MESSAGE
