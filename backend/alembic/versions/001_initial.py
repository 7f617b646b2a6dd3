"""Initial schema: sources, dom_snapshots, changes.

Revision ID: 001
Revises:

sources and dom_snapshots are owned by the admin tooling and the scraper;
they are created here so a fresh database matches what the job reads.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Sources table
    op.create_table(
        "sources",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("url", sa.String(2048), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
    )
    op.create_index("ix_sources_url", "sources", ["url"], unique=True)
    op.create_index("ix_sources_is_active", "sources", ["is_active"])

    # Snapshots table (written by the scraper)
    op.create_table(
        "dom_snapshots",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("url", sa.String(2048), nullable=False),
        sa.Column("content", sa.Text, nullable=True),
        sa.Column("captured_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_dom_snapshots_url", "dom_snapshots", ["url"])
    op.create_index("ix_dom_snapshots_captured_at", "dom_snapshots", ["captured_at"])

    # Changes table
    op.create_table(
        "changes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "source_id",
            sa.Integer,
            sa.ForeignKey("sources.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("snapshot_id1", sa.Integer, sa.ForeignKey("dom_snapshots.id"), nullable=False),
        sa.Column("snapshot_id2", sa.Integer, sa.ForeignKey("dom_snapshots.id"), nullable=False),
        sa.Column("diff", postgresql.JSONB, nullable=False),
        sa.Column("classification", sa.String(32), nullable=True),
        sa.Column("explanation", sa.Text, nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_changes_source_id", "changes", ["source_id"])
    op.create_index("ix_changes_classification", "changes", ["classification"])
    op.create_index("ix_changes_timestamp", "changes", ["timestamp"])
    # Not unique: duplicate prevention is a read-before-insert check
    op.create_index("ix_changes_snapshot_pair", "changes", ["snapshot_id1", "snapshot_id2"])


def downgrade() -> None:
    op.drop_table("changes")
    op.drop_table("dom_snapshots")
    op.drop_table("sources")
