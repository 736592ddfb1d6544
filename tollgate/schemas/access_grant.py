"""Access grant schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from tollgate.domains.access.references import Reference


class AccessGrantCreate(BaseModel):
    """Schema for creating a grant.

    Fields mirror the stored row; build it with :meth:`from_references`.
    """

    target_type: str = Field(..., min_length=1, max_length=255)
    target_id: str = Field(..., min_length=1, max_length=255)
    target_fingerprint: str
    actor_type: str = Field(..., min_length=1, max_length=255)
    actor_id: str = Field(..., min_length=1, max_length=255)
    actor_fingerprint: str
    permission: str = Field(..., min_length=1, max_length=64)
    permission_mask: int = Field(default=0, ge=0)

    @classmethod
    def from_references(
        cls, target: Reference, actor: Reference, permission: str, permission_mask: int = 0
    ) -> "AccessGrantCreate":
        return cls(
            target_type=target.kind,
            target_id=target.id,
            target_fingerprint=target.fingerprint,
            actor_type=actor.kind,
            actor_id=actor.id,
            actor_fingerprint=actor.fingerprint,
            permission=permission,
            permission_mask=permission_mask,
        )


class AccessGrant(AccessGrantCreate):
    """Schema for a stored grant (with DB fields)."""

    id: int
    created_at: datetime
    modified_at: datetime

    model_config = {"from_attributes": True}
