"""Chat endpoints - creation, document links and the main chat."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.docflow.api.auth import get_current_principal
from backend.docflow.db.context import Principal
from backend.docflow.db.engine import get_session
from backend.docflow.documents.service import DocumentService
from backend.docflow.links.registry import LinkRegistry
from backend.docflow.models.common import LinkType, Visibility
from backend.docflow.models.documents import (
    ChatLinkRecord,
    ChatRecord,
    DocumentRecord,
    LinkedChat,
)

router = APIRouter(tags=["chats"])


class CreateChatRequest(BaseModel):
    """Request body for POST /chats."""

    title: str = Field(..., min_length=1)
    visibility: Visibility = Visibility.private
    organization_id: uuid.UUID | None = None
    team_id: uuid.UUID | None = None


class LinkChatRequest(BaseModel):
    """Request body for PUT /chats/{chat_id}/link."""

    document_id: uuid.UUID
    link_type: LinkType = LinkType.created


class TrackModificationRequest(BaseModel):
    """Request body for POST /chats/{chat_id}/modified."""

    document_id: uuid.UUID


class SetMainChatRequest(BaseModel):
    """Request body for PUT /documents/{document_id}/main-chat."""

    chat_id: uuid.UUID


class EnsureMainChatRequest(BaseModel):
    """Optional body for POST /documents/{document_id}/main-chat."""

    title: str | None = None


class MainChatResponse(BaseModel):
    """Response carrying a document's main chat id."""

    document_id: uuid.UUID
    chat_id: uuid.UUID


class UnlinkResponse(BaseModel):
    """Response for DELETE /chats/{chat_id}/link."""

    removed: bool


def get_link_registry(session: Annotated[Session, Depends(get_session)]) -> LinkRegistry:
    return LinkRegistry(session)


def get_document_service(session: Annotated[Session, Depends(get_session)]) -> DocumentService:
    return DocumentService(session)


@router.post("/chats", response_model=ChatRecord, status_code=status.HTTP_201_CREATED)
def create_chat(
    request: CreateChatRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[DocumentService, Depends(get_document_service)],
) -> ChatRecord:
    return service.create_chat(
        principal,
        request.title,
        visibility=request.visibility,
        organization_id=request.organization_id,
        team_id=request.team_id,
    )


@router.put("/chats/{chat_id}/link", response_model=ChatLinkRecord)
def link_chat(
    chat_id: uuid.UUID,
    request: LinkChatRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    registry: Annotated[LinkRegistry, Depends(get_link_registry)],
) -> ChatLinkRecord:
    """Link a chat to a document. Both must be owned by the caller."""
    return registry.link_chat(principal, chat_id, request.document_id, request.link_type)


@router.delete("/chats/{chat_id}/link", response_model=UnlinkResponse)
def unlink_chat(
    chat_id: uuid.UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    registry: Annotated[LinkRegistry, Depends(get_link_registry)],
) -> UnlinkResponse:
    return UnlinkResponse(removed=registry.unlink_chat(principal, chat_id))


@router.get("/chats/{chat_id}/link", response_model=DocumentRecord | None)
def get_linked_document(
    chat_id: uuid.UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    registry: Annotated[LinkRegistry, Depends(get_link_registry)],
) -> DocumentRecord | None:
    return registry.get_linked_document(principal, chat_id)


@router.post("/chats/{chat_id}/modified", response_model=ChatLinkRecord)
def track_modification(
    chat_id: uuid.UUID,
    request: TrackModificationRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    registry: Annotated[LinkRegistry, Depends(get_link_registry)],
) -> ChatLinkRecord:
    """Record that this chat modified the document."""
    return registry.track_modification(principal, chat_id, request.document_id)


@router.get("/documents/{document_id}/chats", response_model=list[LinkedChat])
def list_document_chats(
    document_id: uuid.UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    registry: Annotated[LinkRegistry, Depends(get_link_registry)],
) -> list[LinkedChat]:
    return registry.list_document_chats(principal, document_id)


@router.put("/documents/{document_id}/main-chat", response_model=ChatLinkRecord)
def set_main_chat(
    document_id: uuid.UUID,
    request: SetMainChatRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    registry: Annotated[LinkRegistry, Depends(get_link_registry)],
) -> ChatLinkRecord:
    """Designate an existing chat as the document's main chat."""
    return registry.link_main_chat(principal, document_id, request.chat_id)


@router.post("/documents/{document_id}/main-chat", response_model=MainChatResponse)
def ensure_main_chat(
    document_id: uuid.UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    registry: Annotated[LinkRegistry, Depends(get_link_registry)],
    request: EnsureMainChatRequest | None = None,
) -> MainChatResponse:
    """Return the main chat, creating one if the document has none."""
    title = request.title if request else None
    chat_id = registry.create_main_chat_if_absent(principal, document_id, title=title)
    return MainChatResponse(document_id=document_id, chat_id=chat_id)
