"""SQLAlchemy ORM models."""

from __future__ import annotations

import datetime
import uuid

from sqlalchemy import JSON, ForeignKey, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class SopDocument(Base):
    __tablename__ = "sop_documents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(Text)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    department: Mapped[str] = mapped_column(String(64), index=True)
    # draft | active | archived; only active documents are searchable
    status: Mapped[str] = mapped_column(String(16), default="active", index=True)
    created_at: Mapped[datetime.datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime.datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )

    sections: Mapped[list[SopSection]] = relationship(
        back_populates="document", cascade="all, delete-orphan"
    )


class SopSection(Base):
    __tablename__ = "sop_sections"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    document_id: Mapped[str] = mapped_column(
        ForeignKey("sop_documents.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(Text)
    content: Mapped[str] = mapped_column(Text)
    order_index: Mapped[int] = mapped_column(default=0)
    # Derived from title + content; not invalidated when the content changes.
    embedding: Mapped[list[float] | None] = mapped_column(
        JSON(none_as_null=True), default=None
    )
    created_at: Mapped[datetime.datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime.datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )

    document: Mapped[SopDocument] = relationship(back_populates="sections")
