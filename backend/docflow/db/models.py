"""SQLAlchemy ORM models for documents, history, proposals and chat links."""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    """Current UTC time; the single clock used for persisted timestamps."""
    return datetime.now(UTC)


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONVariant = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Chat(Base):
    """Chat table - only the metadata the core needs; messages live elsewhere."""

    __tablename__ = "chat"
    __table_args__ = (Index("idx_chat_user", "user_id", "created_at"),)

    chat_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    visibility: Mapped[str] = mapped_column(Text, nullable=False, default="private")
    organization_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    team_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # Relationships
    link: Mapped["ChatDocumentLink | None"] = relationship(
        "ChatDocumentLink", back_populates="chat", cascade="all, delete-orphan", uselist=False
    )


class Document(Base):
    """Document table - live content plus workspace preferences."""

    __tablename__ = "document"
    __table_args__ = (
        Index("idx_document_user", "user_id", "created_at"),
        Index("idx_document_org", "organization_id"),
        Index("idx_document_team", "team_id"),
    )

    document_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    kind: Mapped[str] = mapped_column(Text, nullable=False, default="text")
    visibility: Mapped[str] = mapped_column(Text, nullable=False, default="private")
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    organization_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    team_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    # Non-owning reference; deleting the chat clears it
    current_main_chat_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("chat.chat_id", ondelete="SET NULL"), nullable=True
    )
    last_view_mode: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_accessed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    has_unpushed_changes: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # Relationships
    branches: Mapped[list["DocumentBranch"]] = relationship(
        "DocumentBranch", back_populates="document", cascade="all, delete-orphan"
    )
    pending_changes: Mapped[list["PendingChange"]] = relationship(
        "PendingChange", back_populates="document", cascade="all, delete-orphan"
    )
    chat_links: Mapped[list["ChatDocumentLink"]] = relationship(
        "ChatDocumentLink", back_populates="document", cascade="all, delete-orphan"
    )
    branch_requests: Mapped[list["BranchRequest"]] = relationship(
        "BranchRequest", back_populates="document", cascade="all, delete-orphan"
    )


class DocumentBranch(Base):
    """Document branch table - named lines of history."""

    __tablename__ = "document_branch"
    __table_args__ = (
        UniqueConstraint("document_id", "name", name="uq_branch_document_name"),
        Index("idx_branch_document", "document_id"),
    )

    branch_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("document.document_id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    parent_branch_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("document_branch.branch_id", ondelete="SET NULL"), nullable=True
    )
    created_by_type: Mapped[str] = mapped_column(Text, nullable=False, default="user")
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # Relationships
    document: Mapped["Document"] = relationship("Document", back_populates="branches")
    versions: Mapped[list["DocumentVersion"]] = relationship(
        "DocumentVersion",
        back_populates="branch",
        cascade="all, delete-orphan",
        order_by="DocumentVersion.version_number",
    )


class DocumentVersion(Base):
    """Document version table - immutable snapshots, numbered per branch."""

    __tablename__ = "document_version"
    __table_args__ = (
        UniqueConstraint("branch_id", "version_number", name="uq_version_branch_number"),
    )

    version_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    branch_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("document_branch.branch_id", ondelete="CASCADE"), nullable=False
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    commit_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    author_type: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    # Set when the version came from accepting a pending change
    proposed_by_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    proposed_by_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    parent_version_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("document_version.version_id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # Relationships
    branch: Mapped["DocumentBranch"] = relationship("DocumentBranch", back_populates="versions")


class PendingChange(Base):
    """Pending change table - staged edits awaiting accept/reject."""

    __tablename__ = "pending_change"
    __table_args__ = (
        Index("idx_change_document_state", "document_id", "state", "created_at"),
        CheckConstraint("state IN ('proposed', 'accepted', 'rejected')", name="ck_change_state"),
    )

    change_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("document.document_id", ondelete="CASCADE"), nullable=False
    )
    document_created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    state: Mapped[str] = mapped_column(Text, nullable=False, default="proposed")
    description: Mapped[str] = mapped_column(Text, nullable=False)
    # {original_content, proposed_content, diff}
    changes: Mapped[dict[str, Any]] = mapped_column(JSONVariant, nullable=False)
    change_type: Mapped[str] = mapped_column(Text, nullable=False)
    author_type: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    accepted_version_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("document_version.version_id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    document: Mapped["Document"] = relationship("Document", back_populates="pending_changes")


class ChatDocumentLink(Base):
    """Chat-document link table. A chat links to at most one document."""

    __tablename__ = "chat_document_link"
    __table_args__ = (Index("idx_link_document", "document_id", "linked_at"),)

    chat_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("chat.chat_id", ondelete="CASCADE"), primary_key=True
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("document.document_id", ondelete="CASCADE"), nullable=False
    )
    document_created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    link_type: Mapped[str] = mapped_column(Text, nullable=False, default="created")
    linked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # Relationships
    chat: Mapped["Chat"] = relationship("Chat", back_populates="link")
    document: Mapped["Document"] = relationship("Document", back_populates="chat_links")


class BranchRequest(Base):
    """Branch request table - AI asks an editor to open a branch."""

    __tablename__ = "branch_request"
    __table_args__ = (Index("idx_branch_request_document", "document_id", "created_at"),)

    request_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("document.document_id", ondelete="CASCADE"), nullable=False
    )
    proposed_name: Mapped[str] = mapped_column(Text, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    requested_by_type: Mapped[str] = mapped_column(Text, nullable=False, default="ai")
    requested_by_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")
    created_branch_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("document_branch.branch_id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    document: Mapped["Document"] = relationship("Document", back_populates="branch_requests")
