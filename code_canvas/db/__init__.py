"""Database module for code_canvas lineage persistence."""

from code_canvas.db import repository
from code_canvas.db.models import Base, Generation, Thread
from code_canvas.db.store import (
    SqlLineageStore,
    create_engine_instance,
    create_session_factory,
    default_session_factory,
    session_scope,
)

__all__ = [
    "Base",
    "Thread",
    "Generation",
    "SqlLineageStore",
    "create_engine_instance",
    "create_session_factory",
    "default_session_factory",
    "session_scope",
    "repository",
]
