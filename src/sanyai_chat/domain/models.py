"""Domain models for the chat application."""

from datetime import datetime, timezone
from typing import Any, List, Literal, Mapping, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

Role = Literal["user", "assistant"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


class Chat(BaseModel):
    """Chat model."""

    id: str = Field(default_factory=new_id)
    created_at: datetime = Field(default_factory=utcnow)


class Message(BaseModel):
    """Message model."""

    id: str = Field(default_factory=new_id)
    chat_id: str
    role: Role
    content: str
    created_at: datetime = Field(default_factory=utcnow)


class Usage(BaseModel):
    """Token usage of a single model call."""

    input_tokens: int = 0
    output_tokens: int = 0

    @classmethod
    def from_provider(cls, usage: Any) -> "Usage":
        """Normalize a provider usage payload into input/output tokens.

        Accepts the OpenAI shape (``prompt_tokens``/``completion_tokens``),
        the already-normalized shape (``input_tokens``/``output_tokens``),
        either as a mapping or as an object with attributes. Anything else
        yields zero usage.
        """
        if usage is None:
            return cls()

        def read(name: str) -> Optional[int]:
            if isinstance(usage, Mapping):
                value = usage.get(name)
            else:
                value = getattr(usage, name, None)
            return value if isinstance(value, int) else None

        input_tokens = read("prompt_tokens")
        if input_tokens is None:
            input_tokens = read("input_tokens")
        output_tokens = read("completion_tokens")
        if output_tokens is None:
            output_tokens = read("output_tokens")
        return cls(input_tokens=input_tokens or 0, output_tokens=output_tokens or 0)


class Source(BaseModel):
    """A web page cited by a search-augmented answer."""

    title: str = "Source"
    link: Optional[str] = None
    favicon: Optional[str] = None


class SearchResult(BaseModel):
    """Context snippets and sources returned by a web search."""

    context: str = ""
    sources: List[Source] = []


class ChatReply(BaseModel):
    """Assistant response together with its token usage."""

    response: str
    usage: Usage = Field(default_factory=Usage)
