"""Access grant model."""

from sqlalchemy import Index, Integer, String, event, inspect
from sqlalchemy.orm import Mapped, mapped_column

from tollgate.core.config import settings
from tollgate.core.exceptions import ImmutableFieldError
from tollgate.domains.access.references import Reference
from tollgate.models._base import Base, ReferenceMixin


class AccessGrant(ReferenceMixin, Base):
    """Immutable fact: actor holds a permission on a target.

    Targets and actors can be any entity type, so they are stored as
    (type, id) pairs plus the ``"Type/id"`` fingerprint rather than as
    foreign keys. Grants are created and deleted, never updated.
    """

    __tablename__ = "access_grant"
    __reference_kind__ = "AccessGrant"

    target_type: Mapped[str] = mapped_column(String(255), nullable=False)
    target_id: Mapped[str] = mapped_column(String(255), nullable=False)
    target_fingerprint: Mapped[str] = mapped_column(String(512), nullable=False, index=True)

    actor_type: Mapped[str] = mapped_column(String(255), nullable=False)
    actor_id: Mapped[str] = mapped_column(String(255), nullable=False)
    actor_fingerprint: Mapped[str] = mapped_column(String(512), nullable=False, index=True)

    permission: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    # Mask of the permission when the grant was created, expanded grants included
    permission_mask: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("idx_access_grant_target", "target_type", "target_id"),
        Index("idx_access_grant_actor", "actor_type", "actor_id"),
        *(
            [
                Index(
                    "uq_access_grant",
                    "target_fingerprint",
                    "actor_fingerprint",
                    "permission",
                    unique=True,
                )
            ]
            if settings.ENFORCE_UNIQUE_GRANTS
            else []
        ),
    )

    @property
    def target_reference(self) -> Reference:
        return Reference(self.target_type, self.target_id)

    @property
    def actor_reference(self) -> Reference:
        return Reference(self.actor_type, self.actor_id)

    def __repr__(self) -> str:
        return (
            f"<AccessGrant id={self.id} {self.actor_fingerprint} "
            f"-{self.permission}-> {self.target_fingerprint}>"
        )


@event.listens_for(AccessGrant, "before_update")
def _reject_grant_update(mapper, connection, target: AccessGrant) -> None:
    state = inspect(target)
    for attr in state.attrs:
        if attr.history.has_changes():
            raise ImmutableFieldError(attr.key, "Access grants cannot be modified")
