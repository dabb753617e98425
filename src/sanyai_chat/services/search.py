"""Web search through SerpApi's Google AI Mode engine."""

from typing import Any, Dict, List, Optional

import httpx
import structlog

from ..config import Settings
from ..domain.models import SearchResult, Source

logger = structlog.get_logger()

MAX_CHUNKS = 15
MAX_SOURCES = 5
MIN_SOURCES = 3


class SearchError(Exception):
    """Raised when the search provider returns an unusable response."""


def extract_chunks(data: Dict[str, Any]) -> List[str]:
    """Collect snippet text from text blocks, falling back to organic results."""
    chunks: List[str] = []
    text_blocks = data.get("text_blocks")
    if isinstance(text_blocks, list):
        for block in text_blocks:
            if not isinstance(block, dict):
                continue
            text = block.get("snippet") or block.get("title") or block.get("text")
            if text:
                chunks.append(text)

    if not chunks and isinstance(data.get("organic_results"), list):
        chunks = [
            r["snippet"] for r in data["organic_results"]
            if isinstance(r, dict) and r.get("snippet")
        ]

    return chunks[:MAX_CHUNKS]


def extract_sources(data: Dict[str, Any]) -> List[Source]:
    """Collect up to five sources from the inconsistently shaped response.

    Organic results are preferred, AI Mode references are used when there are
    none, and text blocks carrying links top the list up when fewer than three
    sources were found.
    """
    sources: List[Source] = []

    organic = data.get("organic_results")
    if isinstance(organic, list):
        sources = [
            Source(title=r.get("title") or "Source", link=r.get("link"), favicon=r.get("favicon"))
            for r in organic[:MAX_SOURCES]
            if isinstance(r, dict)
        ]

    references = data.get("references")
    if not sources and isinstance(references, list):
        sources = [
            Source(
                title=r.get("title") or r.get("source") or "Source",
                link=r.get("link"),
                favicon=r.get("source_icon"),
            )
            for r in references[:MAX_SOURCES]
            if isinstance(r, dict)
        ]

    text_blocks = data.get("text_blocks")
    if len(sources) < MIN_SOURCES and isinstance(text_blocks, list):
        seen = {s.link for s in sources}
        for block in text_blocks:
            if len(sources) >= MAX_SOURCES:
                break
            if not isinstance(block, dict):
                continue
            link = block.get("link") or block.get("source_url")
            if not link or link in seen:
                continue
            sources.append(Source(title=block.get("title") or block.get("source") or "Source", link=link))
            seen.add(link)

    return sources


class SearchService:
    """SerpApi client returning context snippets and sources for a query."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.api_key = settings.serp_api_key
        self.url = settings.serp_api_url
        self._client = client or httpx.AsyncClient(timeout=settings.search_timeout)

    async def _fetch(self, query: str) -> Dict[str, Any]:
        response = await self._client.get(
            self.url,
            params={"engine": "google_ai_mode", "q": query, "api_key": self.api_key},
        )
        data = response.json()
        if not isinstance(data, dict):
            raise SearchError("Unexpected response shape")
        if data.get("error"):
            raise SearchError(str(data["error"]))
        return data

    async def search(self, query: str) -> Optional[SearchResult]:
        """Run a web search, returning None when search is unavailable or fails."""
        if not self.api_key:
            logger.warning("serp_api_key_missing", detail="skipping web search")
            return None

        logger.info("web_search_started", query=query)
        try:
            data = await self._fetch(query)
        except SearchError as e:
            logger.error("web_search_provider_error", error=str(e))
            return None
        except (httpx.HTTPError, ValueError) as e:
            logger.error("web_search_network_error", error=str(e))
            return None

        logger.debug(
            "web_search_response",
            keys=sorted(data.keys()),
            organic_results=len(data.get("organic_results") or []),
            text_blocks=len(data.get("text_blocks") or []),
            references=len(data.get("references") or []),
        )

        chunks = extract_chunks(data)
        sources = extract_sources(data)
        logger.info("web_search_complete", chunks=len(chunks), sources=len(sources))
        return SearchResult(context="\n\n".join(chunks), sources=sources)

    async def aclose(self) -> None:
        await self._client.aclose()
