"""In-memory repository implementation."""

import asyncio
from typing import Dict, List

import structlog

from ..domain.models import Chat, Message
from .base import Repository, RepositoryError

logger = structlog.get_logger()


class InMemoryRepository(Repository):
    """Process-local chat store guarded by an asyncio lock."""

    def __init__(self) -> None:
        """Initialize empty storage."""
        self._chats: Dict[str, Chat] = {}
        self._messages: Dict[str, List[Message]] = {}
        self._lock = asyncio.Lock()
        logger.info("repository_initialized", backend="memory")

    async def create_chat(self) -> Chat:
        """Create a new chat."""
        chat = Chat()
        async with self._lock:
            self._chats[chat.id] = chat
            self._messages[chat.id] = []
        logger.info("chat_created", chat_id=chat.id)
        return chat

    async def list_chats(self, limit: int = 20) -> List[Chat]:
        """List chats, most recently created first."""
        async with self._lock:
            chats = sorted(self._chats.values(), key=lambda c: c.created_at, reverse=True)
            return chats[:limit]

    async def add_message(self, message: Message) -> Message:
        """Append a message to an existing chat."""
        async with self._lock:
            if message.chat_id not in self._chats:
                logger.error("chat_not_found_for_message", chat_id=message.chat_id)
                raise RepositoryError(f"Chat {message.chat_id} not found")
            self._messages[message.chat_id].append(message)

        logger.info("message_added", chat_id=message.chat_id, message_role=message.role)
        return message

    async def get_messages(self, chat_id: str) -> List[Message]:
        """Get the messages of a chat ordered by creation time."""
        async with self._lock:
            if chat_id not in self._chats:
                logger.error("chat_not_found_for_messages", chat_id=chat_id)
                raise RepositoryError(f"Chat {chat_id} not found")
            # sorted() is stable, so messages sharing a timestamp keep insertion order
            return sorted(self._messages[chat_id], key=lambda m: m.created_at)
