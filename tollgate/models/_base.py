"""Declarative base and shared mixins for Tollgate models."""

from datetime import datetime
from typing import ClassVar, Optional

from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from tollgate.core.datetime_utils import utc_now_naive
from tollgate.domains.access.exceptions import ReferenceResolutionError
from tollgate.domains.access.references import Reference


class Base(DeclarativeBase):
    """Base class for all models: integer primary key and naive-UTC timestamps."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, nullable=False)
    modified_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now_naive, onupdate=utc_now_naive, nullable=False
    )


class ReferenceMixin:
    """Gives a model a ``reference`` so it can act as a grant actor or target.

    The kind defaults to the class name; set ``__reference_kind__`` to override.
    """

    __reference_kind__: ClassVar[Optional[str]] = None

    @classmethod
    def reference_kind(cls) -> str:
        return cls.__reference_kind__ or cls.__name__

    @property
    def reference(self) -> Reference:
        ident = getattr(self, "id", None)
        if ident is None:
            raise ReferenceResolutionError(self, "entity has no id yet")
        return Reference(self.reference_kind(), ident)

    @property
    def fingerprint(self) -> str:
        return self.reference.fingerprint
