"""
FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from leasequeue import __version__
from leasequeue.api.routes import health_router, queues_router
from leasequeue.config import get_settings
from leasequeue.db import SqlMessageStore, close_db, get_engine, init_db
from leasequeue.observability.logging import setup_logging
from leasequeue.observability.metrics import setup_metrics
from leasequeue.observability.tracing import (
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_tracing,
)
from leasequeue.store.base import MessageStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Connects the SQL message store on startup unless a store was
    supplied to create_app, and closes the database on shutdown.
    """
    setup_logging()
    setup_metrics()
    setup_tracing()

    owns_store = getattr(app.state, "store", None) is None
    if owns_store:
        session_factory = await init_db()
        instrument_sqlalchemy(get_engine())
        app.state.store = SqlMessageStore(session_factory)

    logger.info("Application started")

    yield

    if owns_store:
        await close_db()
        app.state.store = None
    logger.info("Application shutdown")


def create_app(store: MessageStore | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        store: Message store to serve. Defaults to the SQL store,
            connected at startup.

    Returns:
        FastAPI: The configured application instance.
    """
    app = FastAPI(
        title="Lease Queue API",
        description="Lease-based work queue with at-least-once delivery",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_settings().cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(queues_router)

    instrument_fastapi(app)

    return app


def run() -> None:
    """Run the API server."""
    settings = get_settings()

    uvicorn.run(
        create_app(),
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
