"""Chat orchestration.

Handles one chat turn end to end: resolve the chat id, persist the user
message, replay history, answer through either the direct model path or the
web-search path, then persist the assistant reply. Persistence problems are
logged and degrade to a local chat id or a history of just the current
message; they never fail the request.
"""

import time
from typing import Dict, List, Optional

import structlog

from ..domain.depth import DepthProfile, resolve_depth
from ..domain.models import ChatReply, Message, Role, SearchResult, Usage
from ..prompts import (
    NO_WEB_RESULTS_CONTEXT,
    WEB_SEARCH_MODEL,
    WEB_SEARCH_SYSTEM_PROMPT,
    web_search_prompt,
)
from ..repositories.base import Repository, RepositoryError
from .llm import LLMService
from .search import SearchService
from .tokens import count_tokens, count_tokens_in

logger = structlog.get_logger()

WEB_SEARCH_ERROR_RESPONSE = "Error generating web search response."
WEB_SEARCH_FAILED_RESPONSE = "Failed to generate response."


def local_chat_id() -> str:
    """Chat id used when the chat cannot be stored."""
    return f"local-{int(time.time() * 1000)}"


def format_sources(search: SearchResult) -> str:
    """Render the Sources section appended to search-augmented answers."""
    lines = [f"{i}. [{s.title}]({s.link})" for i, s in enumerate(search.sources, start=1)]
    return "\n\n---\n### 🌐 Sources\n" + "".join(f"{line}\n" for line in lines)


class ChatService:
    """Runs chat turns against the model, search and history services."""

    def __init__(
        self,
        repository: Optional[Repository],
        llm_service: LLMService,
        search_service: SearchService,
    ):
        self.repository = repository
        self.llm_service = llm_service
        self.search_service = search_service

    async def _resolve_chat_id(self, chat_id: Optional[str]) -> str:
        if chat_id:
            return chat_id
        if self.repository is None:
            return local_chat_id()
        try:
            chat = await self.repository.create_chat()
            return chat.id
        except RepositoryError as e:
            logger.error("create_chat_error", error=str(e))
            return local_chat_id()

    async def _save(self, chat_id: str, role: Role, content: str) -> None:
        if self.repository is None:
            return
        try:
            await self.repository.add_message(Message(chat_id=chat_id, role=role, content=content))
        except RepositoryError as e:
            logger.error("save_message_error", chat_id=chat_id, role=role, error=str(e))

    async def _load_history(self, chat_id: str, message: str) -> List[Dict[str, str]]:
        fallback = [{"role": "user", "content": message}]
        if self.repository is None:
            return fallback
        try:
            messages = await self.repository.get_messages(chat_id)
        except RepositoryError as e:
            logger.warning("load_history_error", chat_id=chat_id, error=str(e))
            return fallback
        return [{"role": m.role, "content": m.content} for m in messages] or fallback

    async def answer_directly(self, history: List[Dict[str, str]], depth: DepthProfile) -> ChatReply:
        """Answer from the conversation history alone, counting tokens locally."""
        response = await self.llm_service.generate_response(history, depth)
        usage = Usage(
            input_tokens=count_tokens_in(m["content"] for m in history),
            output_tokens=count_tokens(response),
        )
        return ChatReply(response=response, usage=usage)

    async def answer_with_web_search(self, query: str, depth: DepthProfile) -> ChatReply:
        """Answer a single query from web search results, listing the sources used."""
        search = await self.search_service.search(query) or SearchResult()
        context = search.context or NO_WEB_RESULTS_CONTEXT

        logger.info("web_search_synthesis_started", model=WEB_SEARCH_MODEL)
        try:
            response, usage = await self.llm_service.complete(
                model=WEB_SEARCH_MODEL,
                messages=[
                    {"role": "system", "content": WEB_SEARCH_SYSTEM_PROMPT},
                    {"role": "user", "content": web_search_prompt(query, context, depth.instruction)},
                ],
                max_tokens=depth.max_tokens,
                temperature=0.7,
            )
        except Exception as e:
            logger.error("web_search_model_error", model=WEB_SEARCH_MODEL, error=str(e))
            return ChatReply(response=WEB_SEARCH_ERROR_RESPONSE)

        response = response or WEB_SEARCH_FAILED_RESPONSE
        if search.sources:
            response += format_sources(search)
        return ChatReply(response=response, usage=usage)

    async def handle_message(
        self,
        message: str,
        chat_id: Optional[str] = None,
        depth: Optional[str] = None,
        web_search: bool = False,
    ) -> Dict[str, object]:
        """Process one user message and return the chat id, reply and usage."""
        profile = resolve_depth(depth)
        chat_id = await self._resolve_chat_id(chat_id)
        logger.info("chat_request", chat_id=chat_id, depth=profile.label, web_search=web_search)

        await self._save(chat_id, "user", message)
        history = await self._load_history(chat_id, message)

        if web_search:
            reply = await self.answer_with_web_search(message, profile)
        else:
            reply = await self.answer_directly(history, profile)

        await self._save(chat_id, "assistant", reply.response)

        logger.info(
            "chat_response",
            chat_id=chat_id,
            response_length=len(reply.response),
            input_tokens=reply.usage.input_tokens,
            output_tokens=reply.usage.output_tokens,
        )
        return {"chat_id": chat_id, "response": reply.response, "usage": reply.usage.model_dump()}

    async def get_messages(self, chat_id: str) -> List[Message]:
        """Return a chat's messages, or an empty list when unavailable."""
        if self.repository is None:
            return []
        try:
            return await self.repository.get_messages(chat_id)
        except RepositoryError as e:
            logger.warning("message_fetch_error", chat_id=chat_id, error=str(e))
            return []

    async def list_chats(self, limit: int = 20):
        """Return the most recent chats, or an empty list when unavailable."""
        if self.repository is None:
            return []
        try:
            return await self.repository.list_chats(limit=limit)
        except RepositoryError as e:
            logger.warning("chat_list_error", error=str(e))
            return []
