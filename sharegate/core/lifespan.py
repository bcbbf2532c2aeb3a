"""Application lifespan: startup and shutdown.

Single place for startup/shutdown logic. Used by main.py; no business
logic here, only connecting and releasing the storage backend.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Connect storage, yield, then close it.

    The storage instance is created by create_app() and stored on
    app.state.storage, so it already exists when the lifespan starts.
    """
    storage = app.state.storage

    # ---- Startup ----
    await storage.connect()
    logger.info("Storage connected (%s)", type(storage).__name__)

    yield

    # ---- Shutdown ----
    await storage.close()
    logger.info("Storage closed")
