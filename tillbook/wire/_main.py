"""
App factory — environment to running HTTP app.

    uvicorn tillbook.wire:build_app --factory

Reads TILLBOOK_* settings, routes logging, opens the database and hands
an OrderService over SQLAlchemy to create_app. Tables are created on
startup and the engine is disposed on shutdown.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import fastapi

from tillbook.config import Settings, configure_logging
from tillbook.orders import OrderService
from tillbook.storage import SQLAlchemyOrderStore, SQLAlchemySequence, create_tables, open_database
from tillbook.wire._app import create_app

logger = logging.getLogger(__name__)


def build_app(settings: Settings | None = None) -> fastapi.FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings)

    session_factory, engine = open_database(settings.database_url)
    service = OrderService(
        SQLAlchemyOrderStore(session_factory),
        SQLAlchemySequence(session_factory),
        settings,
    )

    @asynccontextmanager
    async def lifespan(app: fastapi.FastAPI) -> AsyncIterator[None]:
        await create_tables(engine)
        logger.info("tillbook ready on %s", engine.url.render_as_string(hide_password=True))
        try:
            yield
        finally:
            await engine.dispose()

    return create_app(service, lifespan=lifespan)


__all__ = ("build_app",)
