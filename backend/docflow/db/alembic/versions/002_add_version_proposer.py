"""Add proposer columns to document_version

Revision ID: 002
Revises: 001
Create Date: 2026-10-16

Versions produced by accepting a pending change are authored by the
accepting editor. The proposer of the change (user or AI) is kept in
proposed_by_type / proposed_by_id. Both are NULL for direct commits.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Add proposed_by_type and proposed_by_id."""
    with op.batch_alter_table("document_version") as batch_op:
        batch_op.add_column(sa.Column("proposed_by_type", sa.Text(), nullable=True))
        batch_op.add_column(sa.Column("proposed_by_id", sa.Uuid(), nullable=True))


def downgrade() -> None:
    """Drop the proposer columns."""
    with op.batch_alter_table("document_version") as batch_op:
        batch_op.drop_column("proposed_by_id")
        batch_op.drop_column("proposed_by_type")
