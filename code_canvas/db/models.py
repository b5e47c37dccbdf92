"""SQLAlchemy ORM models for threads and generations."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class Thread(Base):
    """Top-level unit of work owned by a user."""

    __tablename__ = "threads"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    generations: Mapped[list["Generation"]] = relationship(
        "Generation", back_populates="thread", order_by="Generation.seq"
    )


class Generation(Base):
    """One recorded execution attempt (debug or final)."""

    __tablename__ = "generations"
    __table_args__ = (Index("ix_generations_thread_id_seq", "thread_id", "seq"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    # Insertion counter; timestamps alone can tie within one run
    seq: Mapped[int] = mapped_column(nullable=False, default=0)
    thread_id: Mapped[str] = mapped_column(String(36), ForeignKey("threads.id"), nullable=False)
    parent_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("generations.id"), nullable=True, index=True
    )
    kind: Mapped[str] = mapped_column(
        String(10), nullable=False, default="final", server_default="final"
    )
    prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    code: Mapped[str] = mapped_column(Text, nullable=False)
    image_data: Mapped[str] = mapped_column(Text, nullable=False)  # base64 PNG
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    thread: Mapped["Thread"] = relationship("Thread", back_populates="generations")
