"""Access domain test fixtures and helpers.

Entities are plain dataclasses implementing the Referenceable/Ownable
protocols; storage is the in-memory FakeGrantRepository.
"""

from dataclasses import dataclass
from typing import Optional
from unittest.mock import AsyncMock

import pytest

from tollgate.core.config import Settings
from tollgate.domains.access.checker import AccessChecker
from tollgate.domains.access.fakes.repository import FakeGrantRepository
from tollgate.domains.access.references import Reference
from tollgate.domains.access.registry import PermissionRegistry, build_default_registry
from tollgate.domains.access.service import AccessService

# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


@dataclass
class User:
    id: int

    @property
    def reference(self) -> Reference:
        return Reference("User", self.id)


@dataclass
class Document:
    id: int
    owner: Optional[User] = None

    @property
    def reference(self) -> Reference:
        return Reference("Document", self.id)

    @property
    def owner_reference(self) -> Optional[Reference]:
        return self.owner.reference if self.owner is not None else None


ALICE = User(1)
BOB = User(2)
CAROL = User(3)


class FakeOwnerResolver:
    """Owner lookup keyed by target fingerprint."""

    def __init__(self, owners: Optional[dict[str, Reference]] = None) -> None:
        self.owners = dict(owners or {})
        self.calls: list[Reference] = []

    async def find_owner(self, db, target: Reference) -> Optional[Reference]:
        self.calls.append(target)
        return self.owners.get(target.fingerprint)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def build_checker(
    registry: Optional[PermissionRegistry] = None,
    repo: Optional[FakeGrantRepository] = None,
    owner_resolver=None,
) -> AccessChecker:
    return AccessChecker(
        registry=registry or build_default_registry(),
        grant_repository=repo or FakeGrantRepository(),
        owner_resolver=owner_resolver,
    )


def build_service(
    registry: Optional[PermissionRegistry] = None,
    repo: Optional[FakeGrantRepository] = None,
    settings: Optional[Settings] = None,
) -> AccessService:
    registry = registry or build_default_registry()
    repo = repo or FakeGrantRepository()
    return AccessService(
        registry=registry,
        grant_repo=repo,
        checker=build_checker(registry, repo),
        settings=settings or Settings(),
    )


@pytest.fixture
def db():
    """Stand-in session; the fakes never touch it."""
    return AsyncMock()
