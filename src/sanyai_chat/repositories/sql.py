"""Relational repository backed by SQLModel.

Stores chats and messages in two tables, ``chats`` and ``messages``, with a
foreign key from ``messages.chat_id`` to ``chats.id`` and an index on
``messages.chat_id``. Any SQLAlchemy URL works; production points at the
managed Postgres instance, tests use SQLite.

An unreachable database never prevents construction: table creation is
retried on the next operation, and every failure surfaces as
``RepositoryError``.
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, List, Optional, TypeVar

import structlog
from sqlalchemy import Column, DateTime, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Field, Session, SQLModel, create_engine, select

from ..domain.models import Chat, Message, new_id, utcnow
from .base import Repository, RepositoryError

logger = structlog.get_logger()

T = TypeVar("T")


class ChatRecord(SQLModel, table=True):
    """Chat row."""

    __tablename__ = "chats"

    id: str = Field(default_factory=new_id, primary_key=True)
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class MessageRecord(SQLModel, table=True):
    """Message row."""

    __tablename__ = "messages"

    id: str = Field(default_factory=new_id, primary_key=True)
    chat_id: str = Field(foreign_key="chats.id", index=True)
    role: str                        # "user" or "assistant"
    content: str
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    # insertion order within a chat, breaks created_at ties
    position: int = Field(default=0)


def as_utc(value: datetime) -> datetime:
    """SQLite drops the offset on read; stored values are always UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def create_db_engine(database_url: str):
    """Create an engine, sharing one connection for in-memory SQLite."""
    if database_url.startswith("sqlite"):
        in_memory = database_url in ("sqlite://", "sqlite:///:memory:")
        return create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool if in_memory else None,
        )
    return create_engine(database_url, echo=False, pool_pre_ping=True)


class SQLRepository(Repository):
    """Chat store over a SQL database."""

    def __init__(self, database_url: str, create_tables: bool = True) -> None:
        self.engine = create_db_engine(database_url)
        self._tables_ready = not create_tables
        if create_tables:
            try:
                self._create_tables()
            except SQLAlchemyError as e:
                logger.error("repository_error", operation="create_tables", error=str(e))
        logger.info(
            "repository_initialized",
            backend="sql",
            dialect=self.engine.dialect.name,
            tables_ready=self._tables_ready,
        )

    def _create_tables(self) -> None:
        SQLModel.metadata.create_all(self.engine)
        self._tables_ready = True

    async def _run(self, operation: str, fn: Callable[[Session], T]) -> T:
        def work() -> T:
            if not self._tables_ready:
                self._create_tables()
            with Session(self.engine) as session:
                return fn(session)

        try:
            return await asyncio.to_thread(work)
        except SQLAlchemyError as e:
            logger.error("repository_error", operation=operation, error=str(e))
            raise RepositoryError(f"{operation} failed: {e}") from e

    async def create_chat(self) -> Chat:
        def work(session: Session) -> Chat:
            record = ChatRecord()
            session.add(record)
            session.commit()
            session.refresh(record)
            return Chat(id=record.id, created_at=as_utc(record.created_at))

        chat = await self._run("create_chat", work)
        logger.info("chat_created", chat_id=chat.id)
        return chat

    async def list_chats(self, limit: int = 20) -> List[Chat]:
        def work(session: Session) -> List[Chat]:
            records = session.exec(
                select(ChatRecord).order_by(ChatRecord.created_at.desc()).limit(limit)
            ).all()
            return [Chat(id=r.id, created_at=as_utc(r.created_at)) for r in records]

        return await self._run("list_chats", work)

    async def add_message(self, message: Message) -> Message:
        def work(session: Session) -> Optional[Message]:
            if session.get(ChatRecord, message.chat_id) is None:
                return None
            last = session.exec(
                select(func.max(MessageRecord.position)).where(MessageRecord.chat_id == message.chat_id)
            ).one()
            session.add(
                MessageRecord(
                    id=message.id,
                    chat_id=message.chat_id,
                    role=message.role,
                    content=message.content,
                    created_at=message.created_at,
                    position=(last or 0) + 1,
                )
            )
            session.commit()
            return message

        stored = await self._run("add_message", work)
        if stored is None:
            logger.error("chat_not_found_for_message", chat_id=message.chat_id)
            raise RepositoryError(f"Chat {message.chat_id} not found")
        logger.info("message_added", chat_id=message.chat_id, message_role=message.role)
        return stored

    async def get_messages(self, chat_id: str) -> List[Message]:
        def work(session: Session) -> List[Message]:
            records = session.exec(
                select(MessageRecord)
                .where(MessageRecord.chat_id == chat_id)
                .order_by(MessageRecord.created_at, MessageRecord.position)
            ).all()
            return [
                Message(
                    id=r.id,
                    chat_id=r.chat_id,
                    role=r.role,
                    content=r.content,
                    created_at=as_utc(r.created_at),
                )
                for r in records
            ]

        return await self._run("get_messages", work)
