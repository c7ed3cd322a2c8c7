"""
WoW Guild Sync API - Main Application
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .routes import router
from ...core.config import ConfigLoader
from ...core.container import Container, initialize_container, shutdown_container
from ...core.utils import setup_logging

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> FastAPI:
    """
    Build the application.

    Args:
        container: Pre-initialized container; when omitted one is created
            and initialized on startup
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager"""
        logger.info("Starting WoW Guild Sync API...")
        owns_container = container is None
        if owns_container:
            app.state.container = await initialize_container()

        yield

        logger.info("Shutting down WoW Guild Sync API...")
        if owns_container:
            await shutdown_container()

    app = FastAPI(
        title="WoW Guild Sync",
        description="Guild roster synchronization triggers and live sync events",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def monitor_requests(request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            f"{request.method} {request.url.path} - "
            f"{response.status_code} - {process_time:.3f}s"
        )

        return response

    if container is not None:
        app.state.container = container

    app.include_router(router)
    return app


def run() -> None:
    """Console script entry point."""
    settings = ConfigLoader.load_config()
    setup_logging(logging.DEBUG if settings.debug else logging.INFO)
    uvicorn.run(create_app(), host=settings.server.host, port=settings.server.port)


if __name__ == "__main__":
    run()
