"""
Workbench FastAPI application.

Entry point for the API server.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from server.config import settings
from server.routes import workspaces as workspace_routes
from server.services.workspaces import workspace_store

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Workspaces are in memory only; drop them and their preview modules on shutdown."""
    logger.info("server: starting (%s)", settings.ENVIRONMENT)
    yield
    count = len(workspace_store)
    workspace_store.clear()
    logger.info("server: stopped, released %d workspaces", count)


app = FastAPI(
    title="Workbench",
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)

# Register routes
app.include_router(workspace_routes.router)


@app.get("/health")
async def health():
    """Health check endpoint for uptime monitoring."""
    return {"status": "ok"}


def main() -> None:
    uvicorn.run("server.main:app", host="0.0.0.0", port=8000, log_level=settings.LOG_LEVEL.lower())
