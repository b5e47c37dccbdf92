"""Lineage models: threads and generation nodes."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class GenerationKind(str, Enum):
    """Kind of a recorded attempt."""

    DEBUG = "debug"  # Intermediate self-correction step
    FINAL = "final"  # Last accepted step of a run


class ThreadStatus(str, Enum):
    """Thread-level status values."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class RunState(str, Enum):
    """State of a single agent run."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class GenerationNode(BaseModel):
    """One recorded execution attempt."""

    id: str
    thread_id: str
    parent_id: str | None = None
    kind: GenerationKind = GenerationKind.DEBUG
    prompt: str | None = None
    code: str
    image_data: str  # base64 PNG
    created_at: datetime


class ThreadRecord(BaseModel):
    """A top-level unit of work grouping a forest of generation nodes."""

    id: str
    owner_id: str
    prompt: str
    status: ThreadStatus = ThreadStatus.PENDING
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
