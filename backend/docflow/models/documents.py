"""Document and chat domain models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from backend.docflow.models.common import DocumentKind, LinkType, ViewMode, Visibility


class DocumentRecord(BaseModel):
    """Document as returned by the core (never the ORM instance)."""

    model_config = ConfigDict(from_attributes=True)

    document_id: UUID
    title: str
    content: str
    kind: DocumentKind
    visibility: Visibility
    user_id: UUID
    organization_id: UUID | None = None
    team_id: UUID | None = None
    current_main_chat_id: UUID | None = None
    last_view_mode: ViewMode | None = None
    last_accessed_at: datetime | None = None
    has_unpushed_changes: bool = False
    created_at: datetime
    updated_at: datetime


class DocumentSummary(BaseModel):
    """Document fields needed to render a workspace header."""

    model_config = ConfigDict(from_attributes=True)

    document_id: UUID
    title: str
    kind: DocumentKind
    visibility: Visibility
    user_id: UUID
    created_at: datetime


class ChatRecord(BaseModel):
    """Chat metadata. Messages live outside the core."""

    model_config = ConfigDict(from_attributes=True)

    chat_id: UUID
    title: str
    user_id: UUID
    visibility: Visibility
    organization_id: UUID | None = None
    team_id: UUID | None = None
    created_at: datetime


class ChatLinkRecord(BaseModel):
    """Association of one chat with one document."""

    model_config = ConfigDict(from_attributes=True)

    chat_id: UUID
    document_id: UUID
    document_created_at: datetime
    link_type: LinkType
    linked_at: datetime


class LinkedChat(BaseModel):
    """Chat linked to a document, as listed for that document."""

    chat: ChatRecord
    link_type: LinkType
    linked_at: datetime
    is_main: bool = False
