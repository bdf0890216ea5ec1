"""FastAPI dependencies."""

from flowform.db.session import SessionLocal
from flowform.services.submission_store import SqlAlchemySubmissionStore, SubmissionStore


def get_submission_store() -> SubmissionStore:
    """Submission store dependency backed by the configured database."""
    return SqlAlchemySubmissionStore(SessionLocal)
