"""Storage collaborator contract for lineage, plus an in-memory store."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Protocol
from uuid import uuid4

from code_canvas.errors import GenerationNotFoundError, ThreadNotFoundError
from code_canvas.types import GenerationKind, GenerationNode, ThreadRecord, ThreadStatus


class LineageStore(Protocol):
    """What the lineage tracker needs from persistence.

    Nodes are append-only; the only mutation is the debug -> final retag.
    Threads are soft-deleted, never erased.
    """

    async def create_thread(self, owner_id: str, prompt: str) -> ThreadRecord: ...

    async def get_thread(self, thread_id: str) -> ThreadRecord | None: ...

    async def list_threads(self, owner_id: str) -> list[ThreadRecord]: ...

    async def set_thread_status(self, thread_id: str, status: ThreadStatus) -> None: ...

    async def soft_delete_thread(self, thread_id: str) -> None: ...

    async def create_node(
        self,
        thread_id: str,
        parent_id: str | None,
        kind: GenerationKind,
        prompt: str | None,
        code: str,
        image_data: str,
    ) -> str: ...

    async def get_node(self, node_id: str) -> GenerationNode | None: ...

    async def retag_final(self, node_id: str) -> None: ...

    async def list_nodes(self, thread_id: str) -> list[GenerationNode]: ...


class InMemoryLineageStore:
    """Flat arena of threads and nodes keyed by id."""

    def __init__(self) -> None:
        self._threads: dict[str, ThreadRecord] = {}
        self._nodes: dict[str, GenerationNode] = {}

    async def create_thread(self, owner_id: str, prompt: str) -> ThreadRecord:
        now = datetime.now(UTC)
        thread = ThreadRecord(
            id=str(uuid4()), owner_id=owner_id, prompt=prompt, created_at=now, updated_at=now
        )
        self._threads[thread.id] = thread
        return thread

    async def get_thread(self, thread_id: str) -> ThreadRecord | None:
        return self._threads.get(thread_id)

    async def list_threads(self, owner_id: str) -> list[ThreadRecord]:
        threads = [t for t in self._threads.values() if t.owner_id == owner_id and not t.is_deleted]
        return sorted(threads, key=lambda t: t.created_at, reverse=True)

    def _require_thread(self, thread_id: str) -> ThreadRecord:
        thread = self._threads.get(thread_id)
        if thread is None:
            raise ThreadNotFoundError(f"Thread not found: {thread_id}")
        return thread

    async def set_thread_status(self, thread_id: str, status: ThreadStatus) -> None:
        thread = self._require_thread(thread_id)
        self._threads[thread_id] = thread.model_copy(
            update={"status": status, "updated_at": datetime.now(UTC)}
        )

    async def soft_delete_thread(self, thread_id: str) -> None:
        thread = self._require_thread(thread_id)
        now = datetime.now(UTC)
        self._threads[thread_id] = thread.model_copy(update={"deleted_at": now, "updated_at": now})

    async def create_node(
        self,
        thread_id: str,
        parent_id: str | None,
        kind: GenerationKind,
        prompt: str | None,
        code: str,
        image_data: str,
    ) -> str:
        self._require_thread(thread_id)
        if parent_id is not None and parent_id not in self._nodes:
            raise GenerationNotFoundError(f"Parent generation not found: {parent_id}")
        node = GenerationNode(
            id=str(uuid4()),
            thread_id=thread_id,
            parent_id=parent_id,
            kind=kind,
            prompt=prompt,
            code=code,
            image_data=image_data,
            created_at=datetime.now(UTC),
        )
        self._nodes[node.id] = node
        return node.id

    async def get_node(self, node_id: str) -> GenerationNode | None:
        return self._nodes.get(node_id)

    async def retag_final(self, node_id: str) -> None:
        node = self._nodes.get(node_id)
        if node is None:
            raise GenerationNotFoundError(f"Generation not found: {node_id}")
        self._nodes[node_id] = node.model_copy(update={"kind": GenerationKind.FINAL})

    async def list_nodes(self, thread_id: str) -> list[GenerationNode]:
        # dicts keep insertion order, which is creation order
        return [n for n in self._nodes.values() if n.thread_id == thread_id]
