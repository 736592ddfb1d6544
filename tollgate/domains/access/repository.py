"""Access grant repository wrapping crud.access_grant."""

from typing import Any, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tollgate import crud, schemas
from tollgate.db.unit_of_work import UnitOfWork
from tollgate.domains.access.protocols import GrantRepositoryProtocol
from tollgate.domains.access.references import Reference
from tollgate.models.access_grant import AccessGrant


class GrantRepository(GrantRepositoryProtocol):
    """Delegates to the crud.access_grant singleton."""

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
        obj_in = schemas.AccessGrantCreate.from_references(
            target, actor, permission, permission_mask
        )
        return await crud.access_grant.create(db, obj_in=obj_in, uow=uow)

    async def find(
        self, db: AsyncSession, target: Reference, actor: Reference, permission: str
    ) -> Optional[AccessGrant]:
        """Find one grant of a permission."""
        return await crud.access_grant.find(db, target, actor, permission)

    async def find_all_for(
        self, db: AsyncSession, target: Reference, actor: Reference
    ) -> list[AccessGrant]:
        """All grants of an actor on a target, oldest first."""
        return await crud.access_grant.find_all_for(db, target, actor)

    async def destroy(
        self, db: AsyncSession, grant: AccessGrant, uow: Optional[UnitOfWork] = None
    ) -> None:
        """Delete one grant."""
        await crud.access_grant.remove(db, db_obj=grant, uow=uow)

    async def destroy_for_target(
        self, db: AsyncSession, target: Reference, uow: Optional[UnitOfWork] = None
    ) -> int:
        """Delete all grants on a target."""
        return await crud.access_grant.delete_for_target(db, target, uow=uow)

    async def destroy_for_actor(
        self, db: AsyncSession, actor: Reference, uow: Optional[UnitOfWork] = None
    ) -> int:
        """Delete all grants held by an actor."""
        return await crud.access_grant.delete_for_actor(db, actor, uow=uow)

    async def list(
        self,
        db: AsyncSession,
        options: Mapping[str, Any],
        *,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[AccessGrant]:
        """List grants matching query options."""
        return await crud.access_grant.list_by_options(db, options, skip=skip, limit=limit)

    async def count(self, db: AsyncSession, options: Mapping[str, Any]) -> int:
        """Count grants matching query options."""
        return await crud.access_grant.count_by_options(db, options)
