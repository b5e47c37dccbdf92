"""SQL persistence for lineage: engine setup and a LineageStore over the repository.

Every store call runs in its own transaction. The default session factory
targets ``settings.database_url`` and is only built when a store first
needs it, so importing this module never opens a database.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from code_canvas.config import settings
from code_canvas.db import repository
from code_canvas.db.models import Generation, Thread
from code_canvas.db.repository import _ensure_utc
from code_canvas.errors import GenerationNotFoundError, ThreadNotFoundError
from code_canvas.types import GenerationKind, GenerationNode, ThreadRecord, ThreadStatus

logger = logging.getLogger(__name__)

SessionFactory = async_sessionmaker[AsyncSession]


def create_engine_instance(database_url: str | None = None) -> AsyncEngine:
    """Create an async engine for ``database_url`` (default from settings).

    SQLite shares one connection (StaticPool) so that an in-memory
    lineage database lives as long as the engine.
    """
    url = database_url or settings.database_url
    connect_args: dict[str, bool] = {}
    poolclass = None

    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        poolclass = StaticPool

    return create_async_engine(
        url,
        echo=settings.database_echo,
        connect_args=connect_args,
        poolclass=poolclass,
    )


def create_session_factory(engine: AsyncEngine) -> SessionFactory:
    # Records are converted to pydantic models before the session closes
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@lru_cache(maxsize=1)
def default_session_factory() -> SessionFactory:
    return create_session_factory(create_engine_instance())


@asynccontextmanager
async def session_scope(factory: SessionFactory) -> AsyncGenerator[AsyncSession, None]:
    """One transaction: commit on success, roll back and re-raise on error."""
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def thread_to_record(thread: Thread) -> ThreadRecord:
    return ThreadRecord(
        id=thread.id,
        owner_id=thread.owner_id,
        prompt=thread.prompt,
        status=ThreadStatus(thread.status),
        created_at=_ensure_utc(thread.created_at),
        updated_at=_ensure_utc(thread.updated_at),
        deleted_at=_ensure_utc(thread.deleted_at) if thread.deleted_at else None,
    )


def generation_to_node(generation: Generation) -> GenerationNode:
    return GenerationNode(
        id=generation.id,
        thread_id=generation.thread_id,
        parent_id=generation.parent_id,
        kind=GenerationKind(generation.kind),
        prompt=generation.prompt,
        code=generation.code,
        image_data=generation.image_data,
        created_at=_ensure_utc(generation.created_at),
    )


class SqlLineageStore:
    """Persist lineage through SQLAlchemy, one transaction per call."""

    def __init__(self, session_factory: SessionFactory | None = None) -> None:
        self._session_factory = session_factory or default_session_factory()

    async def create_thread(self, owner_id: str, prompt: str) -> ThreadRecord:
        async with session_scope(self._session_factory) as session:
            thread = await repository.create_thread(session, owner_id, prompt)
            return thread_to_record(thread)

    async def get_thread(self, thread_id: str) -> ThreadRecord | None:
        async with session_scope(self._session_factory) as session:
            thread = await repository.get_thread(session, thread_id)
            return thread_to_record(thread) if thread else None

    async def list_threads(self, owner_id: str) -> list[ThreadRecord]:
        async with session_scope(self._session_factory) as session:
            return [thread_to_record(t) for t in await repository.list_threads(session, owner_id)]

    async def set_thread_status(self, thread_id: str, status: ThreadStatus) -> None:
        async with session_scope(self._session_factory) as session:
            if not await repository.set_thread_status(session, thread_id, status.value):
                raise ThreadNotFoundError(f"Thread not found: {thread_id}")

    async def soft_delete_thread(self, thread_id: str) -> None:
        async with session_scope(self._session_factory) as session:
            if not await repository.soft_delete_thread(session, thread_id):
                raise ThreadNotFoundError(f"Thread not found: {thread_id}")

    async def create_node(
        self,
        thread_id: str,
        parent_id: str | None,
        kind: GenerationKind,
        prompt: str | None,
        code: str,
        image_data: str,
    ) -> str:
        async with session_scope(self._session_factory) as session:
            if await repository.get_thread(session, thread_id) is None:
                raise ThreadNotFoundError(f"Thread not found: {thread_id}")
            if parent_id is not None and await repository.get_generation(session, parent_id) is None:
                raise GenerationNotFoundError(f"Parent generation not found: {parent_id}")
            generation = await repository.create_generation(
                session, thread_id, parent_id, kind.value, prompt, code, image_data
            )
            logger.debug(f"Stored generation {generation.id} ({kind.value})")
            return generation.id

    async def get_node(self, node_id: str) -> GenerationNode | None:
        async with session_scope(self._session_factory) as session:
            generation = await repository.get_generation(session, node_id)
            return generation_to_node(generation) if generation else None

    async def retag_final(self, node_id: str) -> None:
        async with session_scope(self._session_factory) as session:
            if not await repository.set_generation_kind(
                session, node_id, GenerationKind.FINAL.value
            ):
                raise GenerationNotFoundError(f"Generation not found: {node_id}")

    async def list_nodes(self, thread_id: str) -> list[GenerationNode]:
        async with session_scope(self._session_factory) as session:
            return [
                generation_to_node(g) for g in await repository.list_generations(session, thread_id)
            ]
