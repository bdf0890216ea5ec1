"""Persistence boundary for forms, submissions, and file records.

The engine only talks to ``SubmissionStore``. ``SqlAlchemySubmissionStore`` is the
database-backed implementation; each call opens its own session in a worker
thread, so concurrent file-record writes never share a session.
"""

import uuid
from functools import partial
from typing import Any, Protocol

import anyio.to_thread
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from flowform.db.models import Form as FormRecord
from flowform.db.models import FormFile, FormSubmission
from flowform.schemas.forms import Form, StoredFileRecord, StoredSubmission


DEFAULT_SUBMISSION_LIMIT = 100


class SubmissionStore(Protocol):
    async def create_submission(
        self,
        *,
        form_id: uuid.UUID,
        responses: dict[str, Any],
        metadata: dict[str, Any],
    ) -> StoredSubmission: ...

    async def create_file_record(
        self,
        *,
        submission_id: uuid.UUID,
        form_id: uuid.UUID,
        field_name: str,
        url: str,
        file_name: str,
        size: str,
        mime_type: str,
    ) -> StoredFileRecord: ...

    async def get_form(self, form_id: uuid.UUID) -> Form | None: ...

    async def list_submissions(
        self, form_id: uuid.UUID, *, limit: int = DEFAULT_SUBMISSION_LIMIT
    ) -> list[StoredSubmission]: ...


def to_stored_submission(record: FormSubmission) -> StoredSubmission:
    return StoredSubmission(
        id=record.id,
        form_id=record.form_id,
        responses=record.responses_json or {},
        metadata=record.submission_metadata or {},
        submitted_at=record.submitted_at,
    )


def to_stored_file_record(record: FormFile) -> StoredFileRecord:
    return StoredFileRecord(
        id=record.id,
        submission_id=record.submission_id,
        form_id=record.form_id,
        field_name=record.field_name,
        blob_url=record.blob_url,
        file_name=record.file_name,
        file_size=record.file_size,
        mime_type=record.mime_type,
        created_at=record.created_at,
    )


def to_form(record: FormRecord) -> Form:
    return Form.model_validate(
        {
            "id": record.id,
            "title": record.title,
            "description": record.description,
            "tone": record.tone,
            "schema": record.schema_json,
            "is_active": record.is_active,
        }
    )


class SqlAlchemySubmissionStore:
    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    async def create_submission(
        self,
        *,
        form_id: uuid.UUID,
        responses: dict[str, Any],
        metadata: dict[str, Any],
    ) -> StoredSubmission:
        return await anyio.to_thread.run_sync(
            partial(self._create_submission, form_id, responses, metadata)
        )

    async def create_file_record(
        self,
        *,
        submission_id: uuid.UUID,
        form_id: uuid.UUID,
        field_name: str,
        url: str,
        file_name: str,
        size: str,
        mime_type: str,
    ) -> StoredFileRecord:
        record = FormFile(
            submission_id=submission_id,
            form_id=form_id,
            field_name=field_name,
            blob_url=url,
            file_name=file_name,
            file_size=size,
            mime_type=mime_type,
        )
        return await anyio.to_thread.run_sync(partial(self._create_file_record, record))

    async def get_form(self, form_id: uuid.UUID) -> Form | None:
        return await anyio.to_thread.run_sync(partial(self._get_form, form_id))

    async def list_submissions(
        self, form_id: uuid.UUID, *, limit: int = DEFAULT_SUBMISSION_LIMIT
    ) -> list[StoredSubmission]:
        return await anyio.to_thread.run_sync(partial(self._list_submissions, form_id, limit))

    def save_form(self, form: Form) -> Form:
        """Insert or replace a form definition (sync; used by seeding and tests)."""
        with self._session_factory() as db:
            record = db.get(FormRecord, form.id)
            if record is None:
                record = FormRecord(id=form.id)
                db.add(record)
            record.title = form.title
            record.description = form.description
            record.tone = form.tone
            record.schema_json = form.form_schema.model_dump(by_alias=True, exclude_none=True)
            record.is_active = form.is_active
            db.commit()
            db.refresh(record)
            return to_form(record)

    def _create_submission(
        self, form_id: uuid.UUID, responses: dict[str, Any], metadata: dict[str, Any]
    ) -> StoredSubmission:
        with self._session_factory() as db:
            record = FormSubmission(
                form_id=form_id,
                responses_json=responses,
                submission_metadata=metadata,
            )
            db.add(record)
            db.commit()
            db.refresh(record)
            return to_stored_submission(record)

    def _create_file_record(self, record: FormFile) -> StoredFileRecord:
        with self._session_factory() as db:
            db.add(record)
            db.commit()
            db.refresh(record)
            return to_stored_file_record(record)

    def _get_form(self, form_id: uuid.UUID) -> Form | None:
        with self._session_factory() as db:
            record = db.get(FormRecord, form_id)
            if record is None:
                return None
            return to_form(record)

    def _list_submissions(self, form_id: uuid.UUID, limit: int) -> list[StoredSubmission]:
        with self._session_factory() as db:
            records = db.scalars(
                select(FormSubmission)
                .where(FormSubmission.form_id == form_id)
                .order_by(FormSubmission.submitted_at.desc(), FormSubmission.id.desc())
                .limit(limit)
            ).all()
            return [to_stored_submission(record) for record in records]
