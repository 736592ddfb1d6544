"""Add access_grant table.

Revision ID: a1c2e3f4b5d6
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "a1c2e3f4b5d6"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create access_grant table.

    Row: (target, actor, permission) where target and actor are stored as
    (type, id) pairs plus a "Type/id" fingerprint. No uniqueness constraint:
    duplicate grants are harmless to the checker.
    """
    op.create_table(
        "access_grant",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        # Target (the entity access is granted on)
        sa.Column("target_type", sa.String(255), nullable=False),
        sa.Column("target_id", sa.String(255), nullable=False),
        sa.Column("target_fingerprint", sa.String(512), nullable=False),
        # Actor (the entity holding the permission)
        sa.Column("actor_type", sa.String(255), nullable=False),
        sa.Column("actor_id", sa.String(255), nullable=False),
        sa.Column("actor_fingerprint", sa.String(512), nullable=False),
        # Permission name and its expanded mask at creation time
        sa.Column("permission", sa.String(64), nullable=False),
        sa.Column("permission_mask", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("modified_at", sa.DateTime(), nullable=False),
    )

    # Lookups by target and by actor (checker, cascades)
    op.create_index("idx_access_grant_target", "access_grant", ["target_type", "target_id"])
    op.create_index("idx_access_grant_actor", "access_grant", ["actor_type", "actor_id"])
    op.create_index(
        "ix_access_grant_target_fingerprint", "access_grant", ["target_fingerprint"]
    )
    op.create_index("ix_access_grant_actor_fingerprint", "access_grant", ["actor_fingerprint"])
    op.create_index("ix_access_grant_permission", "access_grant", ["permission"])


def downgrade():
    """Drop access_grant table."""
    op.drop_table("access_grant")
