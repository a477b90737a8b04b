"""Workspace endpoints - resolve an entry id and persist the view mode."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from backend.docflow.api.auth import get_current_principal
from backend.docflow.db.context import Principal
from backend.docflow.db.engine import get_session
from backend.docflow.models.common import ViewMode
from backend.docflow.models.workspace import WorkspaceEntry
from backend.docflow.workspace.resolver import WorkspaceResolver

router = APIRouter(prefix="/workspace", tags=["workspace"])


class ViewModeRequest(BaseModel):
    """Request body for PUT /workspace/{document_id}/view-mode."""

    view_mode: ViewMode


class ViewModeResponse(BaseModel):
    """Response for PUT /workspace/{document_id}/view-mode."""

    document_id: uuid.UUID
    view_mode: ViewMode


def get_resolver(session: Annotated[Session, Depends(get_session)]) -> WorkspaceResolver:
    return WorkspaceResolver(session)


@router.get("/{entry_id}", response_model=WorkspaceEntry)
def resolve_workspace(
    entry_id: uuid.UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    resolver: Annotated[WorkspaceResolver, Depends(get_resolver)],
) -> WorkspaceEntry:
    """Resolve a document or chat id to its workspace view.

    Returns:
        Document view (entry_type="document") or chat view (entry_type="chat")
    """
    return resolver.resolve(principal, entry_id)


@router.put("/{document_id}/view-mode", response_model=ViewModeResponse)
def update_view_mode(
    document_id: uuid.UUID,
    request: ViewModeRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    resolver: Annotated[WorkspaceResolver, Depends(get_resolver)],
) -> ViewModeResponse:
    view_mode = resolver.update_view_mode(principal, document_id, request.view_mode)
    return ViewModeResponse(document_id=document_id, view_mode=view_mode)
