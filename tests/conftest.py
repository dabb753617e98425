"""Shared fixtures: fake providers and an app client wired to them."""

from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from sanyai_chat.api.app import app, get_llm_service, get_repository, get_search_service
from sanyai_chat.config import Settings
from sanyai_chat.repositories.memory import InMemoryRepository
from sanyai_chat.services.llm import LLMService
from sanyai_chat.services.search import SearchService


class FakeStream:
    """Async iterator of streamed completion chunks."""

    def __init__(self, parts: List[str]):
        self._chunks = [
            SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=part))])
            for part in parts
        ]

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for chunk in self._chunks:
            yield chunk


class FakeCompletions:
    """Stand-in for ``client.chat.completions`` recording every call."""

    def __init__(
        self,
        stream_parts: Optional[List[str]] = None,
        content: str = "",
        usage: Any = None,
        error: Optional[Exception] = None,
    ):
        self.stream_parts = stream_parts if stream_parts is not None else ["Hello", " there!"]
        self.content = content
        self.usage = usage
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if kwargs.get("stream"):
            return FakeStream(self.stream_parts)
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))],
            usage=self.usage,
        )


def make_llm_service(completions: FakeCompletions) -> LLMService:
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return LLMService(Settings(hf_api_key="test-token"), client=client)


def make_search_service(
    handler: Callable[[httpx.Request], httpx.Response],
    api_key: Optional[str] = "serp-key",
) -> SearchService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SearchService(Settings(serp_api_key=api_key), client=client)


def serp_response(payload: Dict[str, Any]) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)
    return handler


SERP_PAYLOAD = {
    "text_blocks": [
        {"snippet": "The Kansas City Chiefs won Super Bowl LVIII.", "link": "https://nfl.com/lviii"},
        {"title": "Final score 25-22 in overtime."},
    ],
    "references": [
        {"title": "NFL recap", "link": "https://nfl.com/recap", "source_icon": "https://nfl.com/icon.png"},
        {"source": "ESPN", "link": "https://espn.com/story"},
    ],
}


@pytest.fixture
def completions() -> FakeCompletions:
    return FakeCompletions(content="Synthesized answer.", usage=SimpleNamespace(prompt_tokens=120, completion_tokens=45))


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def search_service() -> SearchService:
    return make_search_service(serp_response(SERP_PAYLOAD))


@pytest.fixture
def client(repository, completions, search_service):
    """HTTP client over the app with every external collaborator faked."""
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_llm_service] = lambda: make_llm_service(completions)
    app.dependency_overrides[get_search_service] = lambda: search_service
    yield httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")
    app.dependency_overrides.clear()
