"""Root conftest for pytest configuration and shared fixtures.

This conftest is loaded before both testpaths (tests/ and tollgate/domains/),
making its fixtures available to centralized tests AND colocated domain tests.
"""

import os

import pytest

# Register pytest-asyncio plugin at the root level
pytest_plugins = ("pytest_asyncio",)

# ---------------------------------------------------------------------------
# Environment variables: must be set before any tollgate module import
# Uses setdefault so real env vars (CI) are never overridden.
# ---------------------------------------------------------------------------
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_LEVEL", "WARNING")


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def registry():
    """Finalized registry with the standard permissions."""
    from tollgate.domains.access.registry import build_default_registry

    return build_default_registry()


@pytest.fixture
def fake_grant_repo():
    """In-memory grant repository."""
    from tollgate.domains.access.fakes.repository import FakeGrantRepository

    return FakeGrantRepository()
