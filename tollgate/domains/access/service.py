"""Access service: grant lifecycle on top of the checker and grant storage."""

from typing import Any, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tollgate.core.config import Settings
from tollgate.core.logging import logger
from tollgate.db.unit_of_work import UnitOfWork
from tollgate.domains.access.exceptions import UnknownPermissionError
from tollgate.domains.access.permissions import Owner
from tollgate.domains.access.protocols import (
    AccessCheckerProtocol,
    AccessServiceProtocol,
    GrantRepositoryProtocol,
    PermissionRegistryProtocol,
)
from tollgate.domains.access.query import MASK_OPTIONS
from tollgate.domains.access.references import Reference, owner_of, resolve_reference
from tollgate.models.access_grant import AccessGrant

service_logger = logger.with_prefix("AccessService: ").with_context(component="access_service")


class AccessService(AccessServiceProtocol):
    """Domain service for granting, revoking and cascading access grants."""

    def __init__(
        self,
        registry: PermissionRegistryProtocol,
        grant_repo: GrantRepositoryProtocol,
        checker: AccessCheckerProtocol,
        settings: Settings,
    ) -> None:
        """Initialize with injected dependencies."""
        self._registry = registry
        self._grant_repo = grant_repo
        self._checker = checker
        self._settings = settings

    def _permission(self, permission: Any) -> str:
        registered = self._registry.lookup(permission)
        if registered is None:
            raise UnknownPermissionError(permission)
        return registered.name

    def _resolve_masks(self, options: Optional[Mapping[str, Any]]) -> dict[str, Any]:
        resolved = dict(options or {})
        for key in MASK_OPTIONS:
            if resolved.get(key) is not None:
                resolved[key] = self._registry.mask_for(resolved[key])
        return resolved

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    async def access_check(
        self, db: AsyncSession, permission: Any, actor: Any, target: Any
    ) -> Optional[str]:
        """Delegate to the injected checker."""
        return await self._checker.access_check(db, permission, actor, target)

    async def has_permission(
        self, db: AsyncSession, permission: Any, actor: Any, target: Any
    ) -> bool:
        """Delegate to the injected checker."""
        return await self._checker.has_permission(db, permission, actor, target)

    # ------------------------------------------------------------------
    # Grant lifecycle
    # ------------------------------------------------------------------

    async def grant_permission(
        self,
        db: AsyncSession,
        permission: Any,
        actor: Any,
        target: Any,
        uow: Optional[UnitOfWork] = None,
    ) -> AccessGrant:
        """Grant ``permission`` on ``target`` to ``actor``.

        Returns the existing grant when the actor already holds it. Two
        concurrent calls can still both create a row; the checker treats
        duplicates as one.

        Raises:
            UnknownPermissionError: If ``permission`` is not registered.
            ReferenceResolutionError: If actor or target cannot be resolved.
        """
        name = self._permission(permission)
        actor_ref = resolve_reference(actor)
        target_ref = resolve_reference(target)

        existing = await self._grant_repo.find(db, target_ref, actor_ref, name)
        if existing is not None:
            return existing

        mask = self._registry.mask_for(name)
        grant = await self._grant_repo.create(
            db,
            target=target_ref,
            actor=actor_ref,
            permission=name,
            permission_mask=mask,
            uow=uow,
        )
        service_logger.info(
            "Granted permission",
            extra={
                "permission": name,
                "covers": self._registry.names_for_mask(mask),
                "actor": actor_ref.fingerprint,
                "target": target_ref.fingerprint,
            },
        )
        return grant

    async def revoke_permission(
        self,
        db: AsyncSession,
        permission: Any,
        actor: Any,
        target: Any,
        uow: Optional[UnitOfWork] = None,
    ) -> int:
        """Delete every grant of ``permission`` held by ``actor`` on ``target``.

        Grants of other permissions, including grantors of this one, are kept.

        Returns:
            Number of deleted grants
        """
        name = self._permission(permission)
        actor_ref = resolve_reference(actor)
        target_ref = resolve_reference(target)

        grants = await self._grant_repo.list(
            db,
            {
                "only_actors": actor_ref.fingerprint,
                "only_targets": target_ref.fingerprint,
                "permissions": [name],
            },
        )
        for grant in grants:
            await self._grant_repo.destroy(db, grant, uow=uow)
        if grants:
            service_logger.info(
                f"Revoked {len(grants)} grant(s)",
                extra={
                    "permission": name,
                    "actor": actor_ref.fingerprint,
                    "target": target_ref.fingerprint,
                },
            )
        return len(grants)

    async def destroy_grant(
        self, db: AsyncSession, grant: AccessGrant, uow: Optional[UnitOfWork] = None
    ) -> None:
        """Delete a single grant."""
        await self._grant_repo.destroy(db, grant, uow=uow)

    async def find_grant(
        self, db: AsyncSession, permission: Any, actor: Any, target: Any
    ) -> Optional[AccessGrant]:
        """Find a grant of exactly ``permission`` (no grantor expansion)."""
        return await self._grant_repo.find(
            db, resolve_reference(target), resolve_reference(actor), self._permission(permission)
        )

    async def grants_for(self, db: AsyncSession, actor: Any, target: Any) -> list[AccessGrant]:
        """The grants ``actor`` holds on ``target``, oldest first."""
        return await self._grant_repo.find_all_for(
            db, resolve_reference(target), resolve_reference(actor)
        )

    async def list_grants(
        self,
        db: AsyncSession,
        options: Optional[Mapping[str, Any]] = None,
        *,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[AccessGrant]:
        """List grants filtered by ``only_*``/``except_*`` and other query options.

        ``permissions_all`` and ``permissions_any`` may name permissions; they
        are turned into masks through the registry before the query runs.

        Raises:
            UnknownPermissionError: If a mask option names an unknown permission.
        """
        return await self._grant_repo.list(
            db, self._resolve_masks(options), skip=skip, limit=limit
        )

    async def count_grants(
        self, db: AsyncSession, options: Optional[Mapping[str, Any]] = None
    ) -> int:
        """Count grants filtered by query options (see :meth:`list_grants`)."""
        return await self._grant_repo.count(db, self._resolve_masks(options))

    async def create_owner_grant(
        self, db: AsyncSession, target: Any, uow: Optional[UnitOfWork] = None
    ) -> Optional[AccessGrant]:
        """Record the owner grant for a newly created ownable target.

        Does nothing when ``CREATE_OWNER_GRANTS`` is off, when the target
        reports no owner, or when no ``owner`` permission is registered.
        """
        if not self._settings.CREATE_OWNER_GRANTS:
            return None
        owner = owner_of(target)
        if owner is None or self._registry.lookup(Owner.NAME) is None:
            return None
        return await self.grant_permission(db, Owner.NAME, owner, target, uow=uow)

    # ------------------------------------------------------------------
    # Cascades
    # ------------------------------------------------------------------

    async def on_target_destroyed(
        self, db: AsyncSession, target: Any, uow: Optional[UnitOfWork] = None
    ) -> int:
        """Delete all grants on ``target``; call before deleting the target."""
        target_ref = resolve_reference(target)
        count = await self._grant_repo.destroy_for_target(db, target_ref, uow=uow)
        service_logger.info(
            f"Deleted {count} grant(s) on destroyed target",
            extra={"target": target_ref.fingerprint},
        )
        return count

    async def on_actor_destroyed(
        self, db: AsyncSession, actor: Any, uow: Optional[UnitOfWork] = None
    ) -> int:
        """Delete all grants held by ``actor``; call before deleting the actor."""
        actor_ref = resolve_reference(actor)
        count = await self._grant_repo.destroy_for_actor(db, actor_ref, uow=uow)
        service_logger.info(
            f"Deleted {count} grant(s) of destroyed actor",
            extra={"actor": actor_ref.fingerprint},
        )
        return count

    async def destroy_entity(self, db: AsyncSession, entity: Any) -> int:
        """Delete an entity and every grant that references it, in one transaction.

        Grants where the entity is the target or the actor are deleted first,
        then the entity itself.

        Returns:
            Number of deleted grants
        """
        ref: Reference = resolve_reference(entity)
        async with UnitOfWork(db) as uow:
            count = await self.on_target_destroyed(db, ref, uow=uow)
            count += await self.on_actor_destroyed(db, ref, uow=uow)
            await db.delete(entity)
            await uow.commit()
        return count
