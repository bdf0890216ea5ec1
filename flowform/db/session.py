from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker

from flowform.core.config import settings
from flowform.db.base import Base


def build_engine(database_url: str) -> Engine:
    connect_args: dict[str, object] = {}
    backend = make_url(database_url).get_backend_name()
    if backend.startswith("postgresql"):
        connect_args["options"] = "-c timezone=utc"
    elif backend == "sqlite":
        # Store calls run in worker threads.
        connect_args["check_same_thread"] = False
    return create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(bind: Engine | None = None) -> None:
    from flowform.db import models  # noqa: F401

    Base.metadata.create_all(bind or engine)
