"""Access checker: decides whether an actor may exercise a permission on a target."""

from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tollgate.core.exceptions import TollgateException
from tollgate.core.logging import logger
from tollgate.domains.access.permissions import Owner, permission_name
from tollgate.domains.access.protocols import (
    AccessCheckerProtocol,
    GrantRepositoryProtocol,
    OwnerResolverProtocol,
    PermissionRegistryProtocol,
)
from tollgate.domains.access.references import Reference, owner_of, resolve_reference

checker_logger = logger.with_prefix("AccessChecker: ").with_context(component="access_checker")


class AccessChecker(AccessCheckerProtocol):
    """Grant-based access checker.

    The check runs in this order:

    1. The permission is resolved through the registry; unknown names deny.
    2. Actor and target are resolved to references; unresolvable values deny.
    3. The owner of the target holds every permission without a stored grant.
       Ownership comes from the target itself (``Ownable``) or, when it cannot
       tell, from the injected owner resolver.
    4. A grant of the requested permission authorizes it, and so does a
       stored ``owner`` grant.
    5. Otherwise the first grant (oldest first) whose permission is a grantor
       of the requested one authorizes it, and its name is returned.

    Nothing raises past :meth:`access_check`: every failure means "denied".
    """

    def __init__(
        self,
        registry: PermissionRegistryProtocol,
        grant_repository: GrantRepositoryProtocol,
        owner_resolver: Optional[OwnerResolverProtocol] = None,
    ) -> None:
        """Initialize with a registry, grant storage and an optional owner resolver.

        The registry is finalized here if it was not already.
        """
        registry.finalize()
        self._registry = registry
        self._grants = grant_repository
        self._owner_resolver = owner_resolver
        owner = registry.lookup(Owner.NAME)
        self._owner_name = owner.name if owner is not None else None

    async def access_check(
        self, db: AsyncSession, permission: Any, actor: Any, target: Any
    ) -> Optional[str]:
        """Check whether ``actor`` may exercise ``permission`` on ``target``.

        Args:
            db: Database session
            permission: Permission name, instance or class
            actor: Actor entity, reference or fingerprint
            target: Target entity, reference or fingerprint

        Returns:
            The name of the permission that authorized the action (the
            requested one, or the grantor that was held), or None if denied.
        """
        registered = self._registry.lookup(permission)
        if registered is None:
            checker_logger.warning(
                "Denied: unknown permission", extra={"permission": repr(permission)}
            )
            return None
        name = registered.name

        try:
            actor_ref = resolve_reference(actor)
            target_ref = resolve_reference(target)
        except TollgateException as e:
            checker_logger.warning(f"Denied: {e}", extra={"permission": name})
            return None
        except Exception as e:
            checker_logger.error(
                f"Denied: reference lookup failed: {e}", extra={"permission": name}, exc_info=True
            )
            return None

        log = checker_logger.with_context(
            permission=name, actor=actor_ref.fingerprint, target=target_ref.fingerprint
        )

        try:
            if await self._is_owner(db, actor_ref, target, target_ref):
                log.debug("Granted to owner")
                return name

            grants = await self._grants.find_all_for(db, target_ref, actor_ref)
        except Exception as e:
            log.error(f"Denied: grant lookup failed: {e}", exc_info=True)
            return None

        held = [g.permission for g in grants]
        if name in held:
            log.debug("Granted directly")
            return name
        if self._owner_name is not None and self._owner_name in held:
            log.debug("Granted through stored owner grant")
            return name

        grantors = self._registry.grantors(name)
        for held_name in held:
            if held_name in grantors:
                log.debug(f"Granted through '{held_name}'")
                return held_name

        log.debug("Denied: no matching grant")
        return None

    async def has_permission(
        self, db: AsyncSession, permission: Any, actor: Any, target: Any
    ) -> bool:
        """Whether ``actor`` may exercise ``permission`` on ``target``."""
        return await self.access_check(db, permission, actor, target) is not None

    async def _is_owner(
        self, db: AsyncSession, actor_ref: Reference, target: Any, target_ref: Reference
    ) -> bool:
        owner = owner_of(target)
        if owner is not None:
            return owner == actor_ref
        if self._owner_resolver is None:
            return False
        resolved = await self._owner_resolver.find_owner(db, target_ref)
        return resolved is not None and resolved == actor_ref


class NullAccessChecker(AccessCheckerProtocol):
    """Checker for unprotected targets: every request is granted.

    Returns the requested permission name when it is registered, the raw
    name otherwise.
    """

    def __init__(self, registry: Optional[PermissionRegistryProtocol] = None) -> None:
        """Initialize with an optional registry used to canonicalize names."""
        self._registry = registry

    async def access_check(
        self, db: AsyncSession, permission: Any, actor: Any, target: Any
    ) -> Optional[str]:
        """Grant unconditionally."""
        if self._registry is not None:
            registered = self._registry.lookup(permission)
            if registered is not None:
                return registered.name
        return permission_name(permission) or str(permission)

    async def has_permission(
        self, db: AsyncSession, permission: Any, actor: Any, target: Any
    ) -> bool:
        """Always True."""
        return True
