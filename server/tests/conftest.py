"""
Pytest configuration and fixtures for the Workbench server tests.
"""

from __future__ import annotations

import httpx
import pytest
import pytest_asyncio

from server.main import app
from server.services.workspaces import workspace_store


@pytest.fixture(autouse=True)
def clean_store():
    """Every test starts with no workspaces."""
    workspace_store.clear()
    yield
    workspace_store.clear()


@pytest_asyncio.fixture
async def async_client():
    """Async HTTP client against the ASGI app."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
