"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from flowform.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Form(Base):
    """Conversational form definition."""

    __tablename__ = "forms"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    tone: Mapped[str] = mapped_column(String(20), default="friendly", nullable=False)
    schema_json: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, onupdate=_utcnow, nullable=False
    )


class FormSubmission(Base):
    """A finalized conversational form response. Never updated after creation."""

    __tablename__ = "form_submissions"
    __table_args__ = (Index("idx_form_submissions_form", "form_id", "submitted_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    form_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False
    )
    responses_json: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    # "metadata" is reserved on declarative classes
    submission_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)

    form: Mapped["Form"] = relationship()


class FormFile(Base):
    """Uploaded file attached to exactly one submission and field."""

    __tablename__ = "form_files"
    __table_args__ = (
        Index("idx_form_files_submission", "submission_id"),
        Index("idx_form_files_form", "form_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    submission_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("form_submissions.id", ondelete="CASCADE"), nullable=False
    )
    form_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False
    )
    field_name: Mapped[str] = mapped_column(String(100), nullable=False)
    blob_url: Mapped[str] = mapped_column(Text, nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Size is reported by the upload collaborator as text
    file_size: Mapped[str] = mapped_column(String(32), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)

    submission: Mapped["FormSubmission"] = relationship()
