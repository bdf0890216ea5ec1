"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from flowform.core.config import settings
from flowform.db.session import create_tables
from flowform.routers import form_responses

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.ENV == "dev":
        create_tables()
        logger.info("dev_tables_created")
    yield


app = FastAPI(
    title="FlowForm API",
    description="Conversational form collection, validation, and submission",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
    lifespan=lifespan,
)

app.include_router(form_responses.router)


@app.get("/health")
def health():
    return {"status": "ok", "version": settings.VERSION}
