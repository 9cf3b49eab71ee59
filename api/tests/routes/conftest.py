"""Route test configuration: disable rate limiter, seed through the app."""

from unittest.mock import patch

import pytest
from fastapi import FastAPI

from services.catalog_service import seed_default_catalog


@pytest.fixture(autouse=True)
def _disable_rate_limiter():
    """Disable slowapi rate limiting so route handlers can be called directly."""
    with patch("core.ratelimit.limiter.enabled", False):
        yield


@pytest.fixture()
async def seeded_catalog(app: FastAPI) -> None:
    """Default catalog, committed through the app's own session maker."""
    async with app.state.session_maker() as session, session.begin():
        await seed_default_catalog(session)
