"""Repository layer for thread and generation CRUD operations."""

from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from code_canvas.db.models import Generation, Thread


def _ensure_utc(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware (SQLite stores naive datetimes)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# =============================================================================
# Thread Repository
# =============================================================================


async def create_thread(session: AsyncSession, owner_id: str, prompt: str) -> Thread:
    """Create a new pending thread."""
    thread = Thread(owner_id=owner_id, prompt=prompt, status="pending")
    session.add(thread)
    await session.flush()
    return thread


async def get_thread(session: AsyncSession, thread_id: str) -> Thread | None:
    """Get thread by ID, including soft-deleted ones."""
    result = await session.execute(select(Thread).where(Thread.id == thread_id))
    return result.scalar_one_or_none()


async def list_threads(session: AsyncSession, owner_id: str) -> list[Thread]:
    """List an owner's live threads, newest first."""
    result = await session.execute(
        select(Thread)
        .where(Thread.owner_id == owner_id, Thread.deleted_at.is_(None))
        .order_by(Thread.created_at.desc())
    )
    return list(result.scalars().all())


async def set_thread_status(session: AsyncSession, thread_id: str, status: str) -> bool:
    """Update thread status. Returns True if the thread existed."""
    thread = await get_thread(session, thread_id)
    if thread:
        thread.status = status
        thread.updated_at = datetime.now(UTC)
        return True
    return False


async def soft_delete_thread(session: AsyncSession, thread_id: str) -> bool:
    """Stamp deleted_at on a thread. Returns True if the thread existed."""
    thread = await get_thread(session, thread_id)
    if thread:
        now = datetime.now(UTC)
        thread.deleted_at = now
        thread.updated_at = now
        return True
    return False


# =============================================================================
# Generation Repository
# =============================================================================


async def _next_seq(session: AsyncSession, thread_id: str) -> int:
    result = await session.execute(
        select(func.coalesce(func.max(Generation.seq), 0)).where(Generation.thread_id == thread_id)
    )
    return int(result.scalar_one()) + 1


async def create_generation(
    session: AsyncSession,
    thread_id: str,
    parent_id: str | None,
    kind: str,
    prompt: str | None,
    code: str,
    image_data: str,
) -> Generation:
    """Append a generation node to a thread."""
    generation = Generation(
        thread_id=thread_id,
        parent_id=parent_id,
        kind=kind,
        prompt=prompt,
        code=code,
        image_data=image_data,
        seq=await _next_seq(session, thread_id),
    )
    session.add(generation)
    await session.flush()
    return generation


async def get_generation(session: AsyncSession, generation_id: str) -> Generation | None:
    """Get generation by ID."""
    result = await session.execute(select(Generation).where(Generation.id == generation_id))
    return result.scalar_one_or_none()


async def list_generations(session: AsyncSession, thread_id: str) -> list[Generation]:
    """List a thread's generations in insertion order."""
    result = await session.execute(
        select(Generation).where(Generation.thread_id == thread_id).order_by(Generation.seq)
    )
    return list(result.scalars().all())


async def set_generation_kind(session: AsyncSession, generation_id: str, kind: str) -> bool:
    """Retag a generation. Returns True if it existed."""
    generation = await get_generation(session, generation_id)
    if generation:
        generation.kind = kind
        return True
    return False
