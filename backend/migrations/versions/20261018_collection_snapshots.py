"""Collection snapshot table

Revision ID: 20261018_snapshots
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_snapshots"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "collection_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("hall_id", sa.String(64), nullable=False),
        sa.Column("collection", sa.String(64), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("written_by", sa.String(64), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("hall_id", "collection", name="uq_collection_snapshots_hall_collection"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("collection_snapshots", schema=None) as batch_op:
        batch_op.create_index("ix_collection_snapshots_hall_id", ["hall_id"], unique=False)


def downgrade():
    with op.batch_alter_table("collection_snapshots", schema=None) as batch_op:
        batch_op.drop_index("ix_collection_snapshots_hall_id")
    op.drop_table("collection_snapshots")
