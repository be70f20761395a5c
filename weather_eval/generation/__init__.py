from .agents import (
    ChatAgent,
    MockAgent,
    OpenAIChatAgent,
    drain_text,
    first_line,
    strip_diacritics,
)

__all__ = [
    "ChatAgent",
    "MockAgent",
    "OpenAIChatAgent",
    "drain_text",
    "first_line",
    "strip_diacritics",
]
