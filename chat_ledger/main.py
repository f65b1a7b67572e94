"""
Chat Ledger — FastAPI Application.

This is the entry point for the application.
All routers are registered here.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from chat_ledger.config import get_settings
from chat_ledger.api.catalog import router as catalog_router
from chat_ledger.api.connections import router as connections_router
from chat_ledger.api.health import router as health_router
from chat_ledger.api.ledger import router as ledger_router
from chat_ledger.api.webhook import router as webhook_router
from chat_ledger.models import Base
from chat_ledger.models.base import SessionLocal, engine
from chat_ledger.services.catalog_service import CatalogService

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def init_database() -> None:
    """Create missing tables and seed the default categories."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        CatalogService(db).seed_default_categories()
        db.commit()
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.AUTO_CREATE_TABLES:
        init_database()
    logger.info("%s %s started (%s)", settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT)
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Chat-driven personal and group expense ledger",
    lifespan=lifespan,
)

# Register routers
app.include_router(health_router)
app.include_router(webhook_router)
app.include_router(connections_router)
app.include_router(catalog_router)
app.include_router(ledger_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("chat_ledger.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
