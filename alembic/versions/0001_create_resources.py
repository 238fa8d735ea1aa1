"""create resources table

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


RESOURCE_KINDS = (
    "APP_DEPLOYMENT",
    "SECRET",
    "PERSISTENT_VOLUME_CLAIM",
    "JOB",
    "POD",
    "DEPLOYMENT",
    "SERVICE",
)


def upgrade() -> None:
    op.create_table(
        "resources",
        sa.Column("uid", sa.String(length=36), nullable=False),
        sa.Column("kind", sa.Enum(*RESOURCE_KINDS, name="resource_kind"), nullable=False),
        sa.Column("namespace", sa.String(length=253), nullable=False),
        sa.Column("name", sa.String(length=253), nullable=False),
        sa.Column("labels", sa.JSON(), nullable=False),
        sa.Column("owner_references", sa.JSON(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("spec", sa.JSON(), nullable=False),
        sa.Column("status", sa.JSON(), nullable=False),
        sa.Column("resource_version", sa.Integer(), nullable=False),
        sa.Column("generation", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("uid"),
        sa.UniqueConstraint("kind", "namespace", "name", name="uq_resources_identity"),
    )
    op.create_index("ix_resources_kind_namespace", "resources", ["kind", "namespace"])


def downgrade() -> None:
    op.drop_index("ix_resources_kind_namespace", table_name="resources")
    op.drop_table("resources")
    sa.Enum(name="resource_kind").drop(op.get_bind(), checkfirst=True)
