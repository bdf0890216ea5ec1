"""
Test configuration and fixtures.

Provides:
- Form factory built from plain schema dicts
- In-memory submission store that records calls and can be told to fail
- SQLite-backed store per test (database file under tmp_path)
- HTTPX AsyncClient with the store dependency overridden
"""
import os
import uuid
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Callable, Generator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session, sessionmaker

# Keep the app from creating tables in the working directory
os.environ["ENV"] = "test"

from flowform.core.deps import get_submission_store
from flowform.db.session import build_engine, create_tables
from flowform.main import app
from flowform.schemas.forms import Form, StoredFileRecord, StoredSubmission
from flowform.services.submission_store import SqlAlchemySubmissionStore


# =============================================================================
# Forms
# =============================================================================

def build_form(
    fields: list[dict[str, Any]],
    *,
    title: str = "Event Signup",
    is_active: bool = True,
) -> Form:
    return Form.model_validate(
        {
            "id": uuid.uuid4(),
            "title": title,
            "description": "Sign up for the spring meetup",
            "tone": "friendly",
            "schema": {"fields": fields},
            "isActive": is_active,
        }
    )


@pytest.fixture
def make_form() -> Callable[..., Form]:
    return build_form


# =============================================================================
# Stores
# =============================================================================

class FakeSubmissionStore:
    """In-memory SubmissionStore that records every write."""

    def __init__(self) -> None:
        self.forms: dict[uuid.UUID, Form] = {}
        self.submissions: list[StoredSubmission] = []
        self.file_records: list[StoredFileRecord] = []
        self.fail_on_submission = False
        self.fail_on_file_record = False

    def add_form(self, form: Form) -> Form:
        self.forms[form.id] = form
        return form

    async def create_submission(self, *, form_id, responses, metadata) -> StoredSubmission:
        if self.fail_on_submission:
            raise RuntimeError("database unavailable")
        submission = StoredSubmission(
            id=uuid.uuid4(),
            form_id=form_id,
            responses=responses,
            metadata=metadata,
            submitted_at=datetime.now(timezone.utc),
        )
        self.submissions.append(submission)
        return submission

    async def create_file_record(
        self, *, submission_id, form_id, field_name, url, file_name, size, mime_type
    ) -> StoredFileRecord:
        if self.fail_on_file_record:
            raise RuntimeError("database unavailable")
        record = StoredFileRecord(
            id=uuid.uuid4(),
            submission_id=submission_id,
            form_id=form_id,
            field_name=field_name,
            blob_url=url,
            file_name=file_name,
            file_size=size,
            mime_type=mime_type,
            created_at=datetime.now(timezone.utc),
        )
        self.file_records.append(record)
        return record

    async def get_form(self, form_id) -> Form | None:
        return self.forms.get(form_id)

    async def list_submissions(self, form_id, *, limit: int = 100) -> list[StoredSubmission]:
        matching = [s for s in self.submissions if s.form_id == form_id]
        return list(reversed(matching))[:limit]


@pytest.fixture
def fake_store() -> FakeSubmissionStore:
    return FakeSubmissionStore()


@pytest.fixture
def session_factory(tmp_path) -> Generator[sessionmaker[Session], None, None]:
    engine = build_engine(f"sqlite:///{tmp_path / 'flowform.db'}")
    create_tables(engine)
    yield sessionmaker(bind=engine, autoflush=False)
    engine.dispose()


@pytest.fixture
def sql_store(session_factory) -> SqlAlchemySubmissionStore:
    return SqlAlchemySubmissionStore(session_factory)


# =============================================================================
# HTTP client
# =============================================================================

@pytest.fixture
async def client(fake_store: FakeSubmissionStore) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_submission_store] = lambda: fake_store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
