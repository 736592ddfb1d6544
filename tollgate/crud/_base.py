"""Base CRUD class shared by the model-specific CRUD singletons."""

from typing import Any, Generic, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tollgate.db.unit_of_work import UnitOfWork
from tollgate.models._base import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType]):
    """CRUD for models that are created and deleted but never updated.

    Every write commits unless a ``uow`` is passed, in which case it only
    flushes and the unit of work owns the commit.
    """

    def __init__(self, model: Type[ModelType]):
        """Initialize the CRUD object.

        Args:
        ----
            model (Type[ModelType]): The SQLAlchemy model.

        """
        self.model = model

    async def get(self, db: AsyncSession, id: int) -> Optional[ModelType]:
        """Get a single object by ID, or None."""
        result = await db.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def get_multi(
        self, db: AsyncSession, *, skip: int = 0, limit: Optional[int] = 100
    ) -> list[ModelType]:
        """Get objects ordered by ID."""
        query = select(self.model).order_by(self.model.id).offset(skip)
        if limit is not None:
            query = query.limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: Union[CreateSchemaType, dict[str, Any]],
        uow: Optional[UnitOfWork] = None,
    ) -> ModelType:
        """Create a new object.

        Args:
        ----
            db (AsyncSession): The database session.
            obj_in (CreateSchemaType | dict): The object data.
            uow (Optional[UnitOfWork]): The unit of work to use for the transaction.

        Returns:
        -------
            ModelType: The created object.

        """
        data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump()
        db_obj = self.model(**data)
        db.add(db_obj)
        await db.flush()
        if not uow:
            await db.commit()
            await db.refresh(db_obj)
        return db_obj

    async def remove(
        self, db: AsyncSession, *, db_obj: ModelType, uow: Optional[UnitOfWork] = None
    ) -> None:
        """Delete an object."""
        await db.delete(db_obj)
        await db.flush()
        if not uow:
            await db.commit()
