"""Resolved workspace entries - one variant per entry type."""

from typing import Annotated, Literal
from uuid import UUID

from pydantic import BaseModel, Field

from backend.docflow.models.common import LinkType, ViewMode
from backend.docflow.models.documents import ChatRecord, DocumentSummary, LinkedChat


class DocumentWorkspaceData(BaseModel):
    """Workspace opened on a document id."""

    entry_type: Literal["document"] = "document"
    document: DocumentSummary
    content: str
    view_mode: ViewMode
    is_owner: bool
    is_read_only: bool
    main_chat_id: UUID | None = None
    linked_chats: list[LinkedChat] = Field(default_factory=list)
    pending_change_count: int = 0


class ChatWorkspaceData(BaseModel):
    """Workspace opened on a chat id. View mode is always chat."""

    entry_type: Literal["chat"] = "chat"
    chat: ChatRecord
    view_mode: Literal[ViewMode.chat] = ViewMode.chat
    is_owner: bool
    is_read_only: bool
    linked_document: DocumentSummary | None = None
    link_type: LinkType | None = None


WorkspaceEntry = Annotated[
    DocumentWorkspaceData | ChatWorkspaceData, Field(discriminator="entry_type")
]
