"""Document endpoints - create, list, read, delete and push direct edits."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.docflow.api.auth import get_current_principal
from backend.docflow.changes.manager import PendingChangeManager
from backend.docflow.db.context import Principal
from backend.docflow.db.engine import get_session
from backend.docflow.documents.service import DocumentService
from backend.docflow.models.common import DocumentKind, Visibility
from backend.docflow.models.documents import DocumentRecord
from backend.docflow.models.versions import VersionRef

router = APIRouter(prefix="/documents", tags=["documents"])


class CreateDocumentRequest(BaseModel):
    """Request body for POST /documents."""

    title: str = Field(..., min_length=1, description="Document title")
    content: str = Field("", description="Initial content, stored as version 1")
    kind: DocumentKind = DocumentKind.text
    visibility: Visibility = Visibility.private
    organization_id: uuid.UUID | None = None
    team_id: uuid.UUID | None = None


class PushRequest(BaseModel):
    """Request body for POST /documents/{document_id}/push."""

    content: str
    commit_message: str | None = None


def get_document_service(session: Annotated[Session, Depends(get_session)]) -> DocumentService:
    return DocumentService(session)


def get_change_manager(session: Annotated[Session, Depends(get_session)]) -> PendingChangeManager:
    return PendingChangeManager(session)


@router.post("", response_model=DocumentRecord, status_code=status.HTTP_201_CREATED)
def create_document(
    request: CreateDocumentRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[DocumentService, Depends(get_document_service)],
) -> DocumentRecord:
    """Create a document with its default branch and initial version."""
    return service.create_document(
        principal,
        request.title,
        request.content,
        kind=request.kind,
        visibility=request.visibility,
        organization_id=request.organization_id,
        team_id=request.team_id,
    )


@router.get("", response_model=list[DocumentRecord])
def list_documents(
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[DocumentService, Depends(get_document_service)],
    include_shared: Annotated[bool, Query()] = False,
) -> list[DocumentRecord]:
    """List own documents, or everything readable with include_shared=true."""
    return service.list_documents(principal, include_shared=include_shared)


@router.get("/{document_id}", response_model=DocumentRecord)
def get_document(
    document_id: uuid.UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[DocumentService, Depends(get_document_service)],
) -> DocumentRecord:
    return service.get_document(principal, document_id)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: uuid.UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[DocumentService, Depends(get_document_service)],
) -> Response:
    service.delete_document(principal, document_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{document_id}/push", response_model=VersionRef)
def push_local_changes(
    document_id: uuid.UUID,
    request: PushRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    manager: Annotated[PendingChangeManager, Depends(get_change_manager)],
) -> VersionRef:
    """Commit a direct edit as the new content and a new version."""
    return manager.push_local_changes(
        principal, document_id, request.content, commit_message=request.commit_message
    )
