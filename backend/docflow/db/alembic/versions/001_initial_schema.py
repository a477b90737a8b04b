"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-16

Creates:
- chat
- document
- document_branch, document_version
- pending_change
- chat_document_link
- branch_request
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )


def upgrade() -> None:
    """Create all tables."""
    # chat table
    op.create_table(
        "chat",
        sa.Column("chat_id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("visibility", sa.Text(), server_default="private", nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=True),
        sa.Column("team_id", sa.Uuid(), nullable=True),
        _created_at(),
    )
    op.create_index("idx_chat_user", "chat", ["user_id", "created_at"])

    # document table
    op.create_table(
        "document",
        sa.Column("document_id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), server_default="", nullable=False),
        sa.Column("kind", sa.Text(), server_default="text", nullable=False),
        sa.Column("visibility", sa.Text(), server_default="private", nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=True),
        sa.Column("team_id", sa.Uuid(), nullable=True),
        sa.Column("current_main_chat_id", sa.Uuid(), nullable=True),
        sa.Column("last_view_mode", sa.Text(), nullable=True),
        sa.Column("last_accessed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "has_unpushed_changes", sa.Boolean(), server_default=sa.false(), nullable=False
        ),
        _created_at(),
        _created_at("updated_at"),
        sa.ForeignKeyConstraint(["current_main_chat_id"], ["chat.chat_id"], ondelete="SET NULL"),
    )
    op.create_index("idx_document_user", "document", ["user_id", "created_at"])
    op.create_index("idx_document_org", "document", ["organization_id"])
    op.create_index("idx_document_team", "document", ["team_id"])

    # document_branch table
    op.create_table(
        "document_branch",
        sa.Column("branch_id", sa.Uuid(), primary_key=True),
        sa.Column("document_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("parent_branch_id", sa.Uuid(), nullable=True),
        sa.Column("created_by_type", sa.Text(), server_default="user", nullable=False),
        sa.Column("created_by_id", sa.Uuid(), nullable=True),
        sa.Column("is_default", sa.Boolean(), server_default=sa.false(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["document_id"], ["document.document_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["parent_branch_id"], ["document_branch.branch_id"], ondelete="SET NULL"
        ),
        sa.UniqueConstraint("document_id", "name", name="uq_branch_document_name"),
    )
    op.create_index("idx_branch_document", "document_branch", ["document_id"])

    # document_version table
    op.create_table(
        "document_version",
        sa.Column("version_id", sa.Uuid(), primary_key=True),
        sa.Column("branch_id", sa.Uuid(), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("commit_message", sa.Text(), nullable=True),
        sa.Column("author_type", sa.Text(), nullable=False),
        sa.Column("author_id", sa.Uuid(), nullable=True),
        sa.Column("parent_version_id", sa.Uuid(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(
            ["branch_id"], ["document_branch.branch_id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["parent_version_id"], ["document_version.version_id"], ondelete="SET NULL"
        ),
        sa.UniqueConstraint("branch_id", "version_number", name="uq_version_branch_number"),
    )

    # pending_change table
    op.create_table(
        "pending_change",
        sa.Column("change_id", sa.Uuid(), primary_key=True),
        sa.Column("document_id", sa.Uuid(), nullable=False),
        sa.Column("document_created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("state", sa.Text(), server_default="proposed", nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("changes", JSON_TYPE, nullable=False),
        sa.Column("change_type", sa.Text(), nullable=False),
        sa.Column("author_type", sa.Text(), nullable=False),
        sa.Column("author_id", sa.Uuid(), nullable=True),
        _created_at(),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_by", sa.Uuid(), nullable=True),
        sa.Column("accepted_version_id", sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(["document_id"], ["document.document_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["accepted_version_id"], ["document_version.version_id"], ondelete="SET NULL"
        ),
        sa.CheckConstraint(
            "state IN ('proposed', 'accepted', 'rejected')", name="ck_change_state"
        ),
    )
    op.create_index(
        "idx_change_document_state", "pending_change", ["document_id", "state", "created_at"]
    )

    # chat_document_link table
    op.create_table(
        "chat_document_link",
        sa.Column("chat_id", sa.Uuid(), primary_key=True),
        sa.Column("document_id", sa.Uuid(), nullable=False),
        sa.Column("document_created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("link_type", sa.Text(), server_default="created", nullable=False),
        _created_at("linked_at"),
        sa.ForeignKeyConstraint(["chat_id"], ["chat.chat_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["document_id"], ["document.document_id"], ondelete="CASCADE"),
    )
    op.create_index("idx_link_document", "chat_document_link", ["document_id", "linked_at"])

    # branch_request table
    op.create_table(
        "branch_request",
        sa.Column("request_id", sa.Uuid(), primary_key=True),
        sa.Column("document_id", sa.Uuid(), nullable=False),
        sa.Column("proposed_name", sa.Text(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("requested_by_type", sa.Text(), server_default="ai", nullable=False),
        sa.Column("requested_by_id", sa.Uuid(), nullable=True),
        sa.Column("status", sa.Text(), server_default="pending", nullable=False),
        sa.Column("created_branch_id", sa.Uuid(), nullable=True),
        _created_at(),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["document_id"], ["document.document_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["created_branch_id"], ["document_branch.branch_id"], ondelete="SET NULL"
        ),
    )
    op.create_index(
        "idx_branch_request_document", "branch_request", ["document_id", "created_at"]
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("branch_request")
    op.drop_table("chat_document_link")
    op.drop_table("pending_change")
    op.drop_table("document_version")
    op.drop_table("document_branch")
    op.drop_table("document")
    op.drop_table("chat")
