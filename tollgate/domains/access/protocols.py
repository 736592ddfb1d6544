"""Protocols for the access domain."""

from typing import Any, Iterable, Mapping, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from tollgate.db.unit_of_work import UnitOfWork
from tollgate.domains.access.permissions import Permission
from tollgate.domains.access.references import Reference
from tollgate.models.access_grant import AccessGrant


class PermissionRegistryProtocol(Protocol):
    """Catalog of permissions and their forwarding relationships."""

    def register(self, permission: Any) -> Permission:
        """Register a Permission instance or subclass."""
        ...

    def register_permission(
        self,
        name: str,
        bit: Optional[int] = None,
        grants: Iterable[Any] = (),
        description: Optional[str] = None,
    ) -> Permission:
        """Create and register a permission."""
        ...

    def lookup(self, permission: Any) -> Optional[Permission]:
        """Find a registered permission by name, instance or class."""
        ...

    def registered(self) -> list[str]:
        """Names of all registered permissions, in registration order."""
        ...

    def finalize(self) -> None:
        """Validate and close the forwarding graph, then freeze the registry."""
        ...

    @property
    def is_finalized(self) -> bool:
        """Whether finalize() has run."""
        ...

    def grantors(self, permission: Any) -> frozenset[str]:
        """Names of the permissions that also satisfy ``permission``."""
        ...

    def expanded_grants(self, permission: Any) -> frozenset[str]:
        """Names of the permissions ``permission`` satisfies, transitively."""
        ...

    def mask_for(self, permissions: Any) -> int:
        """OR together the masks of the given permissions."""
        ...

    def names_for_mask(self, mask: int) -> list[str]:
        """Names of the bit-carrying permissions set in ``mask``."""
        ...


class GrantRepositoryProtocol(Protocol):
    """Data access for access grant records."""

    async def create(
        self,
        db: AsyncSession,
        *,
        target: Reference,
        actor: Reference,
        permission: str,
        permission_mask: int,
        uow: Optional[UnitOfWork] = None,
    ) -> AccessGrant:
        """Store a new grant."""
        ...

    async def find(
        self, db: AsyncSession, target: Reference, actor: Reference, permission: str
    ) -> Optional[AccessGrant]:
        """Find one grant of ``permission`` held by ``actor`` on ``target``."""
        ...

    async def find_all_for(
        self, db: AsyncSession, target: Reference, actor: Reference
    ) -> list[AccessGrant]:
        """All grants held by ``actor`` on ``target``, in insertion order."""
        ...

    async def destroy(
        self, db: AsyncSession, grant: AccessGrant, uow: Optional[UnitOfWork] = None
    ) -> None:
        """Delete one grant."""
        ...

    async def destroy_for_target(
        self, db: AsyncSession, target: Reference, uow: Optional[UnitOfWork] = None
    ) -> int:
        """Delete every grant on ``target``; returns the number deleted."""
        ...

    async def destroy_for_actor(
        self, db: AsyncSession, actor: Reference, uow: Optional[UnitOfWork] = None
    ) -> int:
        """Delete every grant held by ``actor``; returns the number deleted."""
        ...

    async def list(
        self,
        db: AsyncSession,
        options: Mapping[str, Any],
        *,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[AccessGrant]:
        """List grants matching reference filters and query options."""
        ...

    async def count(self, db: AsyncSession, options: Mapping[str, Any]) -> int:
        """Count grants matching reference filters and query options."""
        ...


class OwnerResolverProtocol(Protocol):
    """Resolves the owner of a target that cannot report it itself."""

    async def find_owner(self, db: AsyncSession, target: Reference) -> Optional[Reference]:
        """Return the owning actor of ``target``, or None."""
        ...


class AccessCheckerProtocol(Protocol):
    """Evaluates whether an actor may exercise a permission on a target."""

    async def access_check(
        self, db: AsyncSession, permission: Any, actor: Any, target: Any
    ) -> Optional[str]:
        """Return the name of the authorizing permission, or None."""
        ...

    async def has_permission(
        self, db: AsyncSession, permission: Any, actor: Any, target: Any
    ) -> bool:
        """Boolean form of access_check."""
        ...


class AccessServiceProtocol(Protocol):
    """Grant lifecycle: grant, revoke, owner grants and cascades."""

    async def grant_permission(
        self,
        db: AsyncSession,
        permission: Any,
        actor: Any,
        target: Any,
        uow: Optional[UnitOfWork] = None,
    ) -> AccessGrant:
        """Grant a permission, reusing an existing grant when present."""
        ...

    async def revoke_permission(
        self,
        db: AsyncSession,
        permission: Any,
        actor: Any,
        target: Any,
        uow: Optional[UnitOfWork] = None,
    ) -> int:
        """Delete the grants of one permission held by an actor on a target."""
        ...

    async def create_owner_grant(
        self, db: AsyncSession, target: Any, uow: Optional[UnitOfWork] = None
    ) -> Optional[AccessGrant]:
        """Record the owner grant of a new ownable target."""
        ...

    async def on_target_destroyed(
        self, db: AsyncSession, target: Any, uow: Optional[UnitOfWork] = None
    ) -> int:
        """Delete every grant on a target about to be destroyed."""
        ...

    async def on_actor_destroyed(
        self, db: AsyncSession, actor: Any, uow: Optional[UnitOfWork] = None
    ) -> int:
        """Delete every grant held by an actor about to be destroyed."""
        ...

    async def destroy_entity(self, db: AsyncSession, entity: Any) -> int:
        """Delete an entity after the grants referencing it."""
        ...
