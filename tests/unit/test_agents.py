"""Unit tests for streaming agents and stream helpers."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from weather_eval.config.settings import LLMSettings, Settings
from weather_eval.generation.agents import (
    MockAgent,
    OpenAIChatAgent,
    drain_text,
    first_line,
    strip_diacritics,
)
from weather_eval.services.registry import CITY_TRANSLATOR_AGENT, WEATHER_AGENT, build_registry


class TestPostProcessing:
    """Test text post-processors."""

    def test_strip_diacritics(self):
        assert strip_diacritics("São Paulo") == "Sao Paulo"
        assert strip_diacritics("Zürich") == "Zurich"
        assert strip_diacritics("Tokyo") == "Tokyo"

    def test_first_line(self):
        assert first_line("  Tokyo  \nThe capital of Japan") == "Tokyo"
        assert first_line("\n\nParis\r\nmore") == "Paris"
        assert first_line("") == ""


@pytest.mark.asyncio
class TestMockAgent:
    """Test scripted agent streaming."""

    async def test_stream_concatenates_to_reply(self):
        agent = MockAgent("a", {"weather": "Go for a walk in the park", "default": "no"})
        text = await drain_text(agent.stream([{"role": "user", "content": "weather plan"}]))
        assert text == "Go for a walk in the park"

    async def test_stream_yields_multiple_chunks(self):
        agent = MockAgent("a", "one two three")
        chunks = [c async for c in agent.stream([{"role": "user", "content": "x"}])]
        assert chunks == ["one ", "two ", "three"]

    async def test_default_reply(self):
        agent = MockAgent("a", {"default": "fallback"})
        assert await drain_text(agent.stream([{"role": "user", "content": "?"}])) == "fallback"

    async def test_callable_reply(self):
        agent = MockAgent("a", lambda prompt: prompt.upper())
        assert await drain_text(agent.stream([{"role": "user", "content": "abc"}])) == "ABC"

    async def test_failure_injection(self):
        agent = MockAgent("a", "x", fail_with=ConnectionError("down"))
        with pytest.raises(ConnectionError):
            await drain_text(agent.stream([{"role": "user", "content": "x"}]))

    async def test_calls_recorded(self):
        agent = MockAgent("a", "x")
        await drain_text(agent.stream([{"role": "user", "content": "hello"}]))
        assert agent.calls == [[{"role": "user", "content": "hello"}]]


def _chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class _FakeStream:
    def __init__(self, chunks):
        self._chunks = list(chunks)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._chunks:
            raise StopAsyncIteration
        return self._chunks.pop(0)


@pytest.mark.asyncio
class TestOpenAIChatAgent:
    """Test the OpenAI-backed agent with a mocked client."""

    async def test_stream_yields_deltas_in_order(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=_FakeStream([
            _chunk("Sao"), _chunk(None), SimpleNamespace(choices=[]), _chunk(" Paulo"),
        ]))
        agent = OpenAIChatAgent("translator", "Be brief.", LLMSettings(model="test-model"), client=client)

        text = await drain_text(agent.stream([{"role": "user", "content": "São Paulo"}]))

        assert text == "Sao Paulo"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["stream"] is True
        assert kwargs["messages"][0] == {"role": "system", "content": "Be brief."}
        assert kwargs["messages"][1]["content"] == "São Paulo"


class TestAgentAvailability:
    """Test is_available and the registry check built on it."""

    def test_openai_agent_without_key(self):
        agent = OpenAIChatAgent("translator", "Be brief.", LLMSettings(api_key=None))
        assert not agent.is_available()

    def test_openai_agent_with_key(self):
        agent = OpenAIChatAgent("translator", "Be brief.", LLMSettings(api_key="sk-test"))
        assert agent.is_available()

    def test_openai_agent_with_client(self):
        client = MagicMock()
        client.api_key = "sk-test"
        agent = OpenAIChatAgent("translator", "Be brief.", client=client)
        assert agent.is_available()
        assert agent.client is client

    def test_mock_agent_always_available(self):
        assert MockAgent("t", "x").is_available()

    def test_registry_reports_unconfigured_agents(self, http_client):
        registry = build_registry(Settings(llm=LLMSettings(api_key=None)), http_client=http_client)
        assert registry.unavailable_agents() == [CITY_TRANSLATOR_AGENT, WEATHER_AGENT]

    def test_registry_with_mock_agents(self, registry):
        assert registry.unavailable_agents() == []
