"""Fake grant repository for testing."""

from typing import Any, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tollgate.core.datetime_utils import parse_timestamp, utc_now_naive
from tollgate.db.unit_of_work import UnitOfWork
from tollgate.domains.access.filters import (
    ACTORS,
    GRANTS,
    TARGETS,
    ReferenceFilter,
    partition_reference_filters,
)
from tollgate.domains.access.permissions import permission_name
from tollgate.domains.access.query import mask_option
from tollgate.domains.access.references import Reference
from tollgate.models.access_grant import AccessGrant


def _matches(reference_filter: ReferenceFilter, value: Any) -> bool:
    if reference_filter.is_empty:
        return False
    if reference_filter.only is not None:
        return value in reference_filter.only
    if reference_filter.exclude:
        return value not in reference_filter.exclude
    return True


class FakeGrantRepository:
    """In-memory fake for GrantRepositoryProtocol.

    Grants are transient ``AccessGrant`` instances kept in insertion order.
    Call ``fail_with(exc)`` to make every following call raise ``exc``.
    """

    def __init__(self) -> None:
        """Initialize with an empty store."""
        self._grants: list[AccessGrant] = []
        self._next_id = 1
        self._calls: list[tuple[Any, ...]] = []
        self._error: Optional[BaseException] = None

    def fail_with(self, error: Optional[BaseException]) -> None:
        """Raise ``error`` from every subsequent call (None to stop)."""
        self._error = error

    def _record(self, *call: Any) -> None:
        self._calls.append(call)
        if self._error is not None:
            raise self._error

    def seed(
        self, target: Reference, actor: Reference, permission: str, permission_mask: int = 0
    ) -> AccessGrant:
        """Store a grant without recording a call."""
        grant = AccessGrant(
            id=self._next_id,
            target_type=target.kind,
            target_id=target.id,
            target_fingerprint=target.fingerprint,
            actor_type=actor.kind,
            actor_id=actor.id,
            actor_fingerprint=actor.fingerprint,
            permission=permission,
            permission_mask=permission_mask,
            created_at=utc_now_naive(),
            modified_at=utc_now_naive(),
        )
        self._next_id += 1
        self._grants.append(grant)
        return grant

    @property
    def grants(self) -> list[AccessGrant]:
        return list(self._grants)

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
        """Store a grant."""
        self._record("create", db, target, actor, permission, permission_mask, uow)
        return self.seed(target, actor, permission, permission_mask)

    async def find(
        self, db: AsyncSession, target: Reference, actor: Reference, permission: str
    ) -> Optional[AccessGrant]:
        """Return the oldest matching grant."""
        self._record("find", db, target, actor, permission)
        for grant in self._grants:
            if (
                grant.target_fingerprint == target.fingerprint
                and grant.actor_fingerprint == actor.fingerprint
                and grant.permission == permission
            ):
                return grant
        return None

    async def find_all_for(
        self, db: AsyncSession, target: Reference, actor: Reference
    ) -> list[AccessGrant]:
        """Return grants of actor on target in insertion order."""
        self._record("find_all_for", db, target, actor)
        return [
            g
            for g in self._grants
            if g.target_fingerprint == target.fingerprint
            and g.actor_fingerprint == actor.fingerprint
        ]

    async def destroy(
        self, db: AsyncSession, grant: AccessGrant, uow: Optional[UnitOfWork] = None
    ) -> None:
        """Remove one grant."""
        self._record("destroy", db, grant, uow)
        self._grants = [g for g in self._grants if g.id != grant.id]

    async def destroy_for_target(
        self, db: AsyncSession, target: Reference, uow: Optional[UnitOfWork] = None
    ) -> int:
        """Remove all grants on target."""
        self._record("destroy_for_target", db, target, uow)
        before = len(self._grants)
        self._grants = [g for g in self._grants if g.target_fingerprint != target.fingerprint]
        return before - len(self._grants)

    async def destroy_for_actor(
        self, db: AsyncSession, actor: Reference, uow: Optional[UnitOfWork] = None
    ) -> int:
        """Remove all grants held by actor."""
        self._record("destroy_for_actor", db, actor, uow)
        before = len(self._grants)
        self._grants = [g for g in self._grants if g.actor_fingerprint != actor.fingerprint]
        return before - len(self._grants)

    def _filter(self, options: Optional[Mapping[str, Any]]) -> list[AccessGrant]:
        options = options or {}
        actors = partition_reference_filters(options, ACTORS)
        targets = partition_reference_filters(options, TARGETS)
        grant_ids = partition_reference_filters(options, GRANTS)
        permissions = None
        if options.get("permissions") is not None:
            raw = options["permissions"]
            raw = raw if isinstance(raw, (list, tuple, set)) else [raw]
            permissions = {permission_name(p) for p in raw}
        target_types = None
        if options.get("target_types") is not None:
            raw = options["target_types"]
            target_types = set(raw if isinstance(raw, (list, tuple, set)) else [raw])
        after = parse_timestamp(options.get("created_after"))
        before = parse_timestamp(options.get("created_before"))
        all_mask = mask_option(options.get("permissions_all"))
        any_mask = mask_option(options.get("permissions_any"))

        out = []
        for g in self._grants:
            if not (
                _matches(actors, g.actor_fingerprint)
                and _matches(targets, g.target_fingerprint)
                and _matches(grant_ids, g.id)
            ):
                continue
            if permissions is not None and g.permission not in permissions:
                continue
            if target_types is not None and g.target_type not in target_types:
                continue
            if all_mask and (g.permission_mask & all_mask) != all_mask:
                continue
            if any_mask is not None and not (g.permission_mask & any_mask):
                continue
            if after is not None and not g.created_at > after:
                continue
            if before is not None and not g.created_at < before:
                continue
            out.append(g)
        return out

    async def list(
        self,
        db: AsyncSession,
        options: Mapping[str, Any],
        *,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[AccessGrant]:
        """Filter stored grants in memory."""
        self._record("list", db, dict(options or {}), skip, limit)
        items = self._filter(options)[skip:]
        return items if limit is None else items[:limit]

    async def count(self, db: AsyncSession, options: Mapping[str, Any]) -> int:
        """Count stored grants matching options."""
        self._record("count", db, dict(options or {}))
        return len(self._filter(options))
