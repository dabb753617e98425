"""Base repository interface."""

from abc import ABC, abstractmethod
from typing import List

from ..domain.models import Chat, Message


class RepositoryError(Exception):
    """Raised when the chat store cannot complete an operation."""


class Repository(ABC):
    """Abstract base class for chat history stores."""

    @abstractmethod
    async def create_chat(self) -> Chat:
        """Create a new chat."""
        pass

    @abstractmethod
    async def list_chats(self, limit: int = 20) -> List[Chat]:
        """List chats, most recently created first."""
        pass

    @abstractmethod
    async def add_message(self, message: Message) -> Message:
        """Append a message to an existing chat."""
        pass

    @abstractmethod
    async def get_messages(self, chat_id: str) -> List[Message]:
        """Get the messages of a chat ordered by creation time."""
        pass
