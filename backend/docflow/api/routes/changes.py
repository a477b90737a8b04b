"""Pending change endpoints - propose, review and resolve."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.docflow.api.auth import get_current_principal
from backend.docflow.changes.manager import PendingChangeManager
from backend.docflow.db.context import Principal
from backend.docflow.db.engine import get_session
from backend.docflow.llm.client import TextGenerator, get_text_generator
from backend.docflow.models.changes import PendingChangeRecord, ResolutionResult
from backend.docflow.models.common import AuthorType

router = APIRouter(tags=["changes"])


class ProposeChangeRequest(BaseModel):
    """Request body for POST /documents/{document_id}/changes."""

    description: str = Field(..., min_length=1)
    proposed_content: str
    author_type: AuthorType = AuthorType.user


class GenerateChangeRequest(BaseModel):
    """Request body for POST /documents/{document_id}/changes/ai."""

    description: str = Field(..., min_length=1, description="What the AI should change")


class AcceptChangeRequest(BaseModel):
    """Optional body for POST /changes/{change_id}/accept."""

    new_content: str | None = Field(None, description="Edited content to apply instead")


def get_change_manager(session: Annotated[Session, Depends(get_session)]) -> PendingChangeManager:
    return PendingChangeManager(session)


def get_generator() -> TextGenerator:
    return get_text_generator()


@router.get("/documents/{document_id}/changes", response_model=list[PendingChangeRecord])
def list_pending_changes(
    document_id: uuid.UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    manager: Annotated[PendingChangeManager, Depends(get_change_manager)],
) -> list[PendingChangeRecord]:
    """List changes still awaiting a decision, oldest first."""
    return manager.list_pending(principal, document_id)


@router.post(
    "/documents/{document_id}/changes",
    response_model=PendingChangeRecord,
    status_code=status.HTTP_201_CREATED,
)
def propose_change(
    document_id: uuid.UUID,
    request: ProposeChangeRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    manager: Annotated[PendingChangeManager, Depends(get_change_manager)],
) -> PendingChangeRecord:
    return manager.propose(
        principal,
        document_id,
        request.description,
        request.proposed_content,
        author_type=request.author_type,
    )


@router.post(
    "/documents/{document_id}/changes/ai",
    response_model=PendingChangeRecord,
    status_code=status.HTTP_201_CREATED,
)
async def propose_generated_change(
    document_id: uuid.UUID,
    request: GenerateChangeRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    manager: Annotated[PendingChangeManager, Depends(get_change_manager)],
    generator: Annotated[TextGenerator, Depends(get_generator)],
) -> PendingChangeRecord:
    """Generate a revision with the text generator and stage it for review."""
    return await manager.propose_generated(principal, document_id, request.description, generator)


@router.get("/changes/{change_id}", response_model=PendingChangeRecord)
def get_change(
    change_id: uuid.UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    manager: Annotated[PendingChangeManager, Depends(get_change_manager)],
) -> PendingChangeRecord:
    return manager.get_change(principal, change_id)


@router.post("/changes/{change_id}/accept", response_model=ResolutionResult)
def accept_change(
    change_id: uuid.UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    manager: Annotated[PendingChangeManager, Depends(get_change_manager)],
    request: AcceptChangeRequest | None = None,
) -> ResolutionResult:
    """Accept a change; the content becomes a new version on the default branch."""
    new_content = request.new_content if request else None
    return manager.accept(principal, change_id, new_content=new_content)


@router.post("/changes/{change_id}/reject", response_model=ResolutionResult)
def reject_change(
    change_id: uuid.UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    manager: Annotated[PendingChangeManager, Depends(get_change_manager)],
) -> ResolutionResult:
    return manager.reject(principal, change_id)
