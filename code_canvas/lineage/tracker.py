"""Generation lineage: runs append debug nodes, completion retags the last one final."""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType

from code_canvas.config import settings
from code_canvas.errors import (
    GenerationNotFoundError,
    LineageWriteFailure,
    AttemptBudgetExhausted,
    RunStateError,
    ThreadBusyError,
    ThreadNotFoundError,
)
from code_canvas.sandbox import ExecutionOutcome, ExecutionResult
from code_canvas.types import (
    GenerationKind,
    GenerationNode,
    RunState,
    ThreadRecord,
    ThreadStatus,
)

from .store import LineageStore
from .tree import LineageTree

logger = logging.getLogger(__name__)


class GenerationRun:
    """One agent run: a bounded, strictly sequential series of executions.

    Each successful outcome passed to ``record`` becomes a debug node whose
    parent is the previous node of this run (or the run's starting parent).
    ``complete`` flips the newest node to final; ``fail`` and ``abort``
    leave every node as debug history.
    """

    def __init__(
        self,
        store: LineageStore,
        thread_id: str,
        *,
        prompt: str | None,
        parent_id: str | None,
        max_attempts: int,
    ) -> None:
        self._store = store
        self.thread_id = thread_id
        self.prompt = prompt
        self.start_parent_id = parent_id
        self.max_attempts = max_attempts
        self.state = RunState.RUNNING
        self.attempts = 0
        self.node_ids: list[str] = []
        self.write_failure: LineageWriteFailure | None = None
        self.failure_reason: str | None = None
        # Serializes record/complete so node order matches call order
        self._lock = asyncio.Lock()

    @property
    def last_node_id(self) -> str | None:
        return self.node_ids[-1] if self.node_ids else None

    @property
    def attempts_remaining(self) -> int:
        return max(self.max_attempts - self.attempts, 0)

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    def _require_running(self, action: str) -> None:
        if self.state != RunState.RUNNING:
            raise RunStateError(f"Cannot {action}: run is {self.state.value}")

    async def record(self, outcome: ExecutionOutcome) -> str | None:
        """Record one execution attempt.

        Returns the new node id, or None when the outcome was an error or
        the store failed to persist it. A storage failure never raises here:
        the caller keeps the outcome and the failure is surfaced by
        ``complete``.

        A failed attempt that uses up the budget fails the run, since nothing
        is left to resolve it.

        Raises:
            RunStateError: The run has already finished.
            AttemptBudgetExhausted: Every attempt has been used.
        """
        async with self._lock:
            self._require_running("record")
            if self.exhausted:
                raise AttemptBudgetExhausted(
                    f"Run on thread {self.thread_id} used all {self.max_attempts} attempts"
                )
            self.attempts += 1

            if not isinstance(outcome, ExecutionResult):
                logger.info(
                    f"Attempt {self.attempts} on thread {self.thread_id} failed "
                    f"({outcome.kind.value}): {outcome.message[:200]}"
                )
                if self.exhausted:
                    await self._finish_failed(
                        f"attempt budget exhausted after {self.attempts} attempts"
                    )
                return None

            parent_id = self.last_node_id or self.start_parent_id
            try:
                node_id = await self._store.create_node(
                    self.thread_id,
                    parent_id,
                    GenerationKind.DEBUG,
                    self.prompt,
                    outcome.code,
                    outcome.image_base64,
                )
            except Exception as e:
                self.write_failure = LineageWriteFailure(
                    f"Failed to persist generation for thread {self.thread_id}: {e}"
                )
                self.write_failure.__cause__ = e
                logger.error(
                    f"Lineage write failed on attempt {self.attempts}: {e}",
                    extra={"thread_id": self.thread_id},
                )
                return None

            self.node_ids.append(node_id)
            logger.debug(
                f"Recorded debug node {node_id} (parent {parent_id})",
                extra={"thread_id": self.thread_id, "generation_id": node_id},
            )
            return node_id

    async def complete(self) -> RunState:
        """Finish the run, retagging the newest node as final.

        A run with a write failure or with no recorded nodes ends failed.
        """
        async with self._lock:
            self._require_running("complete")

            if self.write_failure is not None:
                return await self._finish_failed(f"lineage write failed: {self.write_failure}")
            if self.last_node_id is None:
                return await self._finish_failed("run produced no successful generation")

            final_id = self.last_node_id
            # Status first: if it cannot be written, no node has been retagged yet
            try:
                await self._store.set_thread_status(self.thread_id, ThreadStatus.COMPLETED)
            except Exception as e:
                logger.error(f"Failed to mark thread {self.thread_id} completed: {e}")
                return await self._finish_failed(f"status update failed: {e}")
            try:
                await self._store.retag_final(final_id)
            except Exception as e:
                logger.error(f"Failed to retag {final_id} as final: {e}")
                return await self._finish_failed(f"retag failed: {e}")

            self.state = RunState.COMPLETED
            logger.info(
                f"Run completed with {len(self.node_ids)} nodes, final {final_id}",
                extra={"thread_id": self.thread_id, "generation_id": final_id},
            )
            return self.state

    async def fail(self, reason: str) -> RunState:
        """Mark the run failed. Recorded nodes stay as debug history."""
        async with self._lock:
            self._require_running("fail")
            return await self._finish_failed(reason)

    async def abort(self, reason: str = "aborted") -> RunState:
        """Stop the run at a step boundary without finalizing anything."""
        return await self.fail(reason)

    async def _finish_failed(self, reason: str) -> RunState:
        self.failure_reason = reason
        self.state = RunState.FAILED
        logger.warning(f"Run failed: {reason}", extra={"thread_id": self.thread_id})
        try:
            await self._store.set_thread_status(self.thread_id, ThreadStatus.FAILED)
        except Exception as e:
            # The in-memory state is already final; the store keeps its last status
            logger.error(f"Failed to mark thread {self.thread_id} failed: {e}")
        return self.state

    async def __aenter__(self) -> GenerationRun:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self.state != RunState.RUNNING:
            return
        if exc is None:
            await self.complete()
        elif isinstance(exc, asyncio.CancelledError):
            await asyncio.shield(self.fail("cancelled"))
        else:
            await self.fail(f"{type(exc).__name__}: {exc}")


class LineageTracker:
    """Entry point for threads, runs and lineage queries over a store."""

    def __init__(self, store: LineageStore, max_attempts: int | None = None) -> None:
        self.store = store
        self.max_attempts = max_attempts if max_attempts is not None else settings.max_run_attempts
        self._start_lock = asyncio.Lock()

    async def create_thread(self, owner_id: str, prompt: str) -> ThreadRecord:
        thread = await self.store.create_thread(owner_id, prompt)
        logger.info(f"Created thread {thread.id} for {owner_id}", extra={"thread_id": thread.id})
        return thread

    async def get_thread(self, thread_id: str) -> ThreadRecord:
        thread = await self.store.get_thread(thread_id)
        if thread is None or thread.is_deleted:
            raise ThreadNotFoundError(f"Thread not found: {thread_id}")
        return thread

    async def get_node(self, node_id: str) -> GenerationNode:
        node = await self.store.get_node(node_id)
        if node is None:
            raise GenerationNotFoundError(f"Generation not found: {node_id}")
        return node

    async def start_run(
        self,
        thread_id: str,
        prompt: str | None = None,
        *,
        parent_id: str | None = None,
    ) -> GenerationRun:
        """Begin a run on a thread and mark the thread running.

        Raises:
            ThreadNotFoundError: Thread is unknown or deleted.
            ThreadBusyError: Another run is in progress on the thread.
            GenerationNotFoundError: ``parent_id`` does not exist.
        """
        async with self._start_lock:
            thread = await self.get_thread(thread_id)
            if thread.status == ThreadStatus.RUNNING:
                raise ThreadBusyError("Thread already running")
            if parent_id is not None:
                await self.get_node(parent_id)

            await self.store.set_thread_status(thread_id, ThreadStatus.RUNNING)

        logger.info(
            f"Started run on thread {thread_id} (parent {parent_id})",
            extra={"thread_id": thread_id},
        )
        return GenerationRun(
            self.store,
            thread_id,
            prompt=prompt if prompt is not None else thread.prompt,
            parent_id=parent_id,
            max_attempts=self.max_attempts,
        )

    async def continue_from(
        self,
        generation_id: str,
        prompt: str,
        *,
        thread_id: str | None = None,
    ) -> GenerationRun:
        """Branch a new run off an existing generation.

        The run's first node points at ``generation_id``. By default the run
        lives on that generation's thread; ``thread_id`` places it elsewhere.
        """
        node = await self.get_node(generation_id)
        return await self.start_run(thread_id or node.thread_id, prompt, parent_id=node.id)

    async def ancestry(self, node_id: str) -> list[GenerationNode]:
        """Root-first chain of nodes ending at ``node_id``, across threads."""
        chain = [await self.get_node(node_id)]
        seen = {node_id}
        while chain[-1].parent_id is not None:
            parent_id = chain[-1].parent_id
            if parent_id in seen:
                raise GenerationNotFoundError(f"Cycle detected at generation {parent_id}")
            seen.add(parent_id)
            chain.append(await self.get_node(parent_id))
        return list(reversed(chain))

    async def tree(self, thread_id: str) -> LineageTree:
        await self.get_thread(thread_id)
        return LineageTree(await self.store.list_nodes(thread_id))

    async def delete_thread(self, thread_id: str, owner_id: str) -> None:
        """Soft-delete a thread owned by ``owner_id``; its nodes are kept."""
        thread = await self.get_thread(thread_id)
        if thread.owner_id != owner_id:
            raise ThreadNotFoundError(f"Thread not found: {thread_id}")
        await self.store.soft_delete_thread(thread_id)
        logger.info(f"Deleted thread {thread_id}", extra={"thread_id": thread_id})
