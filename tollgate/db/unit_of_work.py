"""Unit of work: groups several writes into one transaction."""

from types import TracebackType
from typing import Optional, Type

from sqlalchemy.ext.asyncio import AsyncSession


class UnitOfWork:
    """Transaction boundary around an ``AsyncSession``.

    CRUD methods that receive a ``uow`` only flush; the caller commits once at
    the end. Leaving the block without committing rolls back.

    Example:
    -------
        async with UnitOfWork(db) as uow:
            await crud.access_grant.delete_for_target(db, target, uow=uow)
            await db.delete(entity)
            await uow.commit()

    """

    def __init__(self, session: AsyncSession):
        """Wrap ``session``."""
        self.session = session
        self._committed = False

    async def __aenter__(self) -> "UnitOfWork":
        self._committed = False
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        if exc_type is not None or not self._committed:
            await self.rollback()

    async def commit(self) -> None:
        """Commit the transaction."""
        await self.session.commit()
        self._committed = True

    async def rollback(self) -> None:
        """Roll back the transaction."""
        await self.session.rollback()
