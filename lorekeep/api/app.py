# lorekeep/api/app.py
"""
FastAPI application.

Usage:
    uvicorn lorekeep.api.app:create_app --factory
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from lorekeep.api.dependencies import Services, build_services, get_version
from lorekeep.api.routes import changes, hashing, jobs, knowledge
from lorekeep.core.config import LorekeepConfig, load_config
from lorekeep.logging.logger import configure_logging
from lorekeep.logging.tags import API

logger = logging.getLogger(__name__)


def create_app(
    services: Optional[Services] = None,
    config: Optional[LorekeepConfig] = None,
    run_supervisor: bool = True,
) -> FastAPI:
    """
    Build the app.

    Args:
        services: Pre-wired components (tests); built from config otherwise
        config: Configuration; loaded from the workspace when omitted
        run_supervisor: Run the periodic timeout sweep while serving
    """
    if services is None:
        config = config or load_config(allow_default=True)
        configure_logging(config.logging.level)
        services = build_services(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        stop = asyncio.Event()
        task = None
        if run_supervisor:
            task = asyncio.create_task(app.state.services.supervisor.run_forever(stop))
            logger.info(f"{API} timeout supervisor started")
        yield
        stop.set()
        if task is not None:
            await task

    app = FastAPI(
        title="Lorekeep API",
        description="Incremental story-knowledge pipeline and change reconciliation",
        version=get_version(),
        lifespan=lifespan,
    )
    app.state.services = services

    app.include_router(hashing.router)
    app.include_router(jobs.router)
    app.include_router(knowledge.router)
    app.include_router(changes.router)

    @app.get("/health")
    async def health():
        return {"status": "healthy", "version": get_version()}

    return app


__all__ = ["create_app"]
