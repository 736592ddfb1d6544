"""CRUD operations for access grants."""

from typing import Any, Mapping, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tollgate.crud._base import CRUDBase
from tollgate.db.unit_of_work import UnitOfWork
from tollgate.domains.access.query import build_grant_count_query, build_grant_query
from tollgate.domains.access.references import Reference
from tollgate.models.access_grant import AccessGrant
from tollgate.schemas.access_grant import AccessGrantCreate


class CRUDAccessGrant(CRUDBase[AccessGrant, AccessGrantCreate]):
    """CRUD operations for access grants."""

    async def find(
        self, db: AsyncSession, target: Reference, actor: Reference, permission: str
    ) -> Optional[AccessGrant]:
        """Get the oldest grant of ``permission`` held by ``actor`` on ``target``."""
        stmt = (
            select(AccessGrant)
            .where(
                AccessGrant.target_fingerprint == target.fingerprint,
                AccessGrant.actor_fingerprint == actor.fingerprint,
                AccessGrant.permission == permission,
            )
            .order_by(AccessGrant.id)
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_all_for(
        self, db: AsyncSession, target: Reference, actor: Reference
    ) -> list[AccessGrant]:
        """Get every grant ``actor`` holds on ``target``, in insertion order.

        Args:
            db: Database session
            target: Target reference
            actor: Actor reference

        Returns:
            List of AccessGrant objects, oldest first
        """
        stmt = (
            select(AccessGrant)
            .where(
                AccessGrant.target_fingerprint == target.fingerprint,
                AccessGrant.actor_fingerprint == actor.fingerprint,
            )
            .order_by(AccessGrant.id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def list_by_options(
        self,
        db: AsyncSession,
        options: Optional[Mapping[str, Any]] = None,
        *,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[AccessGrant]:
        """List grants matching reference filters and query options."""
        result = await db.execute(build_grant_query(options, skip=skip, limit=limit))
        return list(result.scalars().all())

    async def count_by_options(
        self, db: AsyncSession, options: Optional[Mapping[str, Any]] = None
    ) -> int:
        """Count grants matching reference filters and query options."""
        result = await db.execute(build_grant_count_query(options))
        return int(result.scalar_one())

    async def delete_for_target(
        self, db: AsyncSession, target: Reference, uow: Optional[UnitOfWork] = None
    ) -> int:
        """Delete every grant on ``target``.

        Returns:
            Number of deleted grants
        """
        stmt = delete(AccessGrant).where(AccessGrant.target_fingerprint == target.fingerprint)
        return await self._bulk_delete(db, stmt, uow)

    async def delete_for_actor(
        self, db: AsyncSession, actor: Reference, uow: Optional[UnitOfWork] = None
    ) -> int:
        """Delete every grant held by ``actor``.

        Returns:
            Number of deleted grants
        """
        stmt = delete(AccessGrant).where(AccessGrant.actor_fingerprint == actor.fingerprint)
        return await self._bulk_delete(db, stmt, uow)

    async def _bulk_delete(self, db: AsyncSession, stmt, uow: Optional[UnitOfWork]) -> int:
        result = await db.execute(stmt.execution_options(synchronize_session="evaluate"))
        if not uow:
            await db.commit()
        return result.rowcount or 0


access_grant = CRUDAccessGrant(AccessGrant)
