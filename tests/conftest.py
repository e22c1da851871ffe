"""Test configuration and fixtures for the rating engine.

Settings are read from the environment, so every test runs with the offload
channel in thread mode and a fresh settings cache.
"""

from collections.abc import AsyncGenerator, Generator
from typing import Any

import pytest
import pytest_asyncio

from ratebook.core.config import clear_settings_cache
from ratebook.models.rate_program import RateProgram
from ratebook.services.rating.rating_engine import RatingEngine
from ratebook.services.rating.store import InMemoryRateProgramStore
from ratebook.services.rating.version_manager import VersionLifecycleManager

# Configure pytest-asyncio
pytest_plugins = ["pytest_asyncio"]


@pytest.fixture(autouse=True)
def test_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Run with thread offload and no request timeout unless a test says otherwise."""
    monkeypatch.setenv("OFFLOAD_MODE", "thread")
    monkeypatch.setenv("API_ENV", "development")
    monkeypatch.delenv("OFFLOAD_REQUEST_TIMEOUT_SECONDS", raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def engine() -> RatingEngine:
    return RatingEngine()


@pytest.fixture
def ilf_table() -> list[dict[str, float]]:
    return [
        {"limit": 100000, "factor": 1.0},
        {"limit": 500000, "factor": 1.8},
    ]


@pytest.fixture
def gl_payload() -> dict[str, Any]:
    """GL coverage at a rate of 100 with a territory factor of 1.5."""
    return {
        "productId": "prod-gl",
        "state": "TX",
        "coverageSelections": [{"coverageId": "GL", "limit": 100000, "selected": True}],
        "riskFactors": {"territory": 1.5},
        "baseRates": [{"coverageId": "GL", "rate": 100, "basis": "per policy"}],
        "ratingSteps": [
            {"id": "s1", "type": "Multiply", "config": {"factorKey": "territory"}, "order": 1}
        ],
    }


@pytest.fixture
def store() -> InMemoryRateProgramStore:
    return InMemoryRateProgramStore()


@pytest.fixture
def manager(store: InMemoryRateProgramStore) -> VersionLifecycleManager:
    return VersionLifecycleManager(store)


@pytest_asyncio.fixture
async def program(store: InMemoryRateProgramStore) -> AsyncGenerator[RateProgram, None]:
    """A stored rate program to hang versions off."""
    created = await store.create_program(
        RateProgram(org_id="org-1", name="General Liability", created_by="user-1")
    )
    yield created
