"""
Tests for the OpenAI-backed generator with a stubbed client.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from bulk_outreach.ai_generator import AIEmailGenerator, GenerationStatus
from bulk_outreach.errors import GenerationError

pytestmark = [pytest.mark.unit]


def completion(text, tokens=42):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        usage=SimpleNamespace(total_tokens=tokens),
    )


def make_generator(monkeypatch, create):
    monkeypatch.setenv("AI_RETRY_DELAY_SECONDS", "0")
    monkeypatch.setenv("AI_MAX_RETRIES", "1")
    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    return AIEmailGenerator(client=client)


@pytest.mark.asyncio
async def test_generate_returns_text(monkeypatch):
    create = AsyncMock(return_value=completion("  EMAIL 1: ...  "))
    generator = make_generator(monkeypatch, create)

    result = await generator.complete("Write emails")

    assert result.status == GenerationStatus.SUCCESS
    assert result.content == "EMAIL 1: ..."
    assert result.tokens_used == 42
    assert await generator.generate("Write emails") == "EMAIL 1: ..."
    assert create.call_args.kwargs["messages"][1] == {"role": "user", "content": "Write emails"}


@pytest.mark.asyncio
async def test_generate_retries_then_raises(monkeypatch):
    create = AsyncMock(side_effect=RuntimeError("Rate limit reached"))
    generator = make_generator(monkeypatch, create)

    with pytest.raises(GenerationError) as exc_info:
        await generator.generate("Write emails")

    assert create.await_count == 2
    assert exc_info.value.status == GenerationStatus.QUOTA_EXCEEDED.value


@pytest.mark.asyncio
async def test_empty_completion_is_an_error(monkeypatch):
    generator = make_generator(monkeypatch, AsyncMock(return_value=completion("")))

    result = await generator.complete("Write emails")

    assert result.status == GenerationStatus.API_ERROR


@pytest.mark.asyncio
async def test_missing_api_key_fails_without_calling(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    generator = AIEmailGenerator()

    assert generator.validate_configuration()[0] is False
    with pytest.raises(GenerationError, match="Configuration error"):
        await generator.generate("Write emails")


@pytest.mark.asyncio
async def test_value_proposition_transform_and_fallback(monkeypatch):
    generator = make_generator(monkeypatch, AsyncMock(return_value=completion('"Close your books in days"')))
    assert await generator.transform_value_proposition("We do accounting") == "Close your books in days"

    failing = make_generator(monkeypatch, AsyncMock(side_effect=RuntimeError("down")))
    assert await failing.transform_value_proposition("We do accounting") == "We do accounting"
