"""
Streaming chat agents.

An agent turns a list of chat messages into an async stream of text
fragments. Callers drain the stream fully and treat the concatenation as a
single value; no chunk-level semantics leak past the step that uses it.
"""

import asyncio
import unicodedata
from abc import ABC, abstractmethod
from typing import AsyncIterator, Callable, Dict, List, Optional, Union

import structlog
from openai import AsyncOpenAI

from weather_eval.config.settings import LLMSettings

logger = structlog.get_logger(__name__)

Message = Dict[str, str]


class ChatAgent(ABC):
    """Abstract base class for streaming chat agents."""

    def __init__(self, name: str, instructions: str = ""):
        self.name = name
        self.instructions = instructions

    def build_messages(self, messages: List[Message]) -> List[Message]:
        """Prepend the agent instructions as a system message."""
        if not self.instructions:
            return list(messages)
        return [{"role": "system", "content": self.instructions}, *messages]

    @abstractmethod
    def stream(self, messages: List[Message]) -> AsyncIterator[str]:
        """Stream text fragments in arrival order."""

    def is_available(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name='{self.name}')"


class OpenAIChatAgent(ChatAgent):
    """
    Agent backed by an OpenAI-compatible chat completions endpoint.

    Retries and timeouts are handled by the client.
    """

    def __init__(
        self,
        name: str,
        instructions: str,
        settings: Optional[LLMSettings] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        super().__init__(name, instructions)
        self.settings = settings or LLMSettings()
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.api_key,
                base_url=self.settings.base_url,
                timeout=self.settings.timeout,
                max_retries=self.settings.max_retries,
            )
        return self._client

    async def stream(self, messages: List[Message]) -> AsyncIterator[str]:
        response = await self.client.chat.completions.create(
            model=self.settings.model,
            messages=self.build_messages(messages),
            temperature=self.settings.temperature,
            stream=True,
        )
        async for chunk in response:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                yield delta

    def is_available(self) -> bool:
        """True when an API key is configured; the client is not built here."""
        if self._client is not None:
            return bool(self._client.api_key)
        return bool(self.settings.api_key)


class MockAgent(ChatAgent):
    """
    Scripted agent for offline runs and tests.

    ``responses`` maps a keyword found in the last user message to a reply,
    with ``"default"`` as fallback; it may also be a callable receiving the
    last user message.
    """

    def __init__(
        self,
        name: str,
        responses: Union[Dict[str, str], Callable[[str], str], str, None] = None,
        instructions: str = "",
        delay: float = 0.0,
        fail_with: Optional[BaseException] = None,
    ):
        super().__init__(name, instructions)
        self.responses = responses if responses is not None else {}
        self.delay = delay
        self.fail_with = fail_with
        self.calls: List[List[Message]] = []

    def respond(self, prompt: str) -> str:
        if callable(self.responses):
            return self.responses(prompt)
        if isinstance(self.responses, str):
            return self.responses

        prompt_lower = prompt.lower()
        for keyword, reply in self.responses.items():
            if keyword != "default" and keyword.lower() in prompt_lower:
                return reply
        return self.responses.get("default", "")

    async def stream(self, messages: List[Message]) -> AsyncIterator[str]:
        self.calls.append(list(messages))
        if self.fail_with is not None:
            raise self.fail_with

        prompt = messages[-1]["content"] if messages else ""
        words = self.respond(prompt).split(" ")
        for i, word in enumerate(words):
            # Add space after each word except the last
            token = word if i == len(words) - 1 else word + " "
            if self.delay:
                await asyncio.sleep(self.delay)
            yield token


async def drain_text(chunks: AsyncIterator[str]) -> str:
    """Consume a text stream completely and join it in arrival order."""
    parts = []
    async for chunk in chunks:
        parts.append(chunk)
    return "".join(parts)


def first_line(text: str) -> str:
    """First non-empty line of ``text``, stripped."""
    for line in text.strip().splitlines():
        if line.strip():
            return line.strip()
    return ""


def strip_diacritics(text: str) -> str:
    """Remove accents: ``"São Paulo"`` becomes ``"Sao Paulo"``."""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return unicodedata.normalize("NFC", stripped)
