"""Dependency Injection Container.

The container is an immutable dataclass that holds protocol implementations.
It has no construction logic; that belongs in the factory.
"""

from dataclasses import dataclass, replace
from typing import Any

from tollgate.domains.access.protocols import (
    AccessCheckerProtocol,
    AccessServiceProtocol,
    GrantRepositoryProtocol,
    PermissionRegistryProtocol,
)


@dataclass(frozen=True)
class Container:
    """Immutable container holding the access-control wiring.

    Usage:
        # Production: use the global container built by the factory
        from tollgate.core.container import container
        await container.access_checker.access_check(db, "read", actor, target)

        # Testing: construct directly with fakes
        test_container = Container(
            permission_registry=build_default_registry(),
            grant_repo=FakeGrantRepository(),
            ...
        )
    """

    # The one finalized permission registry for the process
    permission_registry: PermissionRegistryProtocol

    # Grant storage (thin wrapper around crud.access_grant)
    grant_repo: GrantRepositoryProtocol

    # Checker and lifecycle service
    access_checker: AccessCheckerProtocol
    access_service: AccessServiceProtocol

    def replace(self, **changes: Any) -> "Container":
        """Return a copy with some dependencies swapped, e.g. for tests."""
        return replace(self, **changes)
