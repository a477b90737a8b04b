"""Branch, version and branch request endpoints."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.docflow.api.auth import get_current_principal
from backend.docflow.db.context import Principal
from backend.docflow.db.engine import get_session
from backend.docflow.diff.engine import summarize_diff
from backend.docflow.models.common import AuthorType, BranchRequestStatus
from backend.docflow.models.diff import DiffEntry, DiffSummary
from backend.docflow.models.versions import (
    BranchRecord,
    BranchRequestRecord,
    VersionRecord,
    VersionRef,
)
from backend.docflow.versioning.requests import BranchRequestService
from backend.docflow.versioning.store import VersionStore

router = APIRouter(tags=["versions"])


class CreateBranchRequest(BaseModel):
    """Request body for POST /documents/{document_id}/branches."""

    name: str = Field(..., min_length=1)
    parent_branch_id: uuid.UUID | None = None


class CreateVersionRequest(BaseModel):
    """Request body for POST /branches/{branch_id}/versions."""

    content: str
    commit_message: str | None = None
    author_type: AuthorType = AuthorType.user


class CompareResponse(BaseModel):
    """Response for GET /versions/compare."""

    from_version_id: uuid.UUID
    to_version_id: uuid.UUID
    diff: list[DiffEntry]
    summary: DiffSummary


class FileBranchRequest(BaseModel):
    """Request body for POST /documents/{document_id}/branch-requests."""

    proposed_name: str = Field(..., min_length=1)
    reason: str | None = None
    requested_by_id: uuid.UUID | None = None


class RespondRequest(BaseModel):
    """Request body for POST /branch-requests/{request_id}/respond."""

    approve: bool
    final_name: str | None = None


def get_version_store(session: Annotated[Session, Depends(get_session)]) -> VersionStore:
    return VersionStore(session)


def get_branch_requests(
    session: Annotated[Session, Depends(get_session)],
) -> BranchRequestService:
    return BranchRequestService(session)


@router.get("/documents/{document_id}/branches", response_model=list[BranchRecord])
def list_branches(
    document_id: uuid.UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    store: Annotated[VersionStore, Depends(get_version_store)],
) -> list[BranchRecord]:
    return store.list_branches(principal, document_id)


@router.post(
    "/documents/{document_id}/branches",
    response_model=BranchRecord,
    status_code=status.HTTP_201_CREATED,
)
def create_branch(
    document_id: uuid.UUID,
    request: CreateBranchRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    store: Annotated[VersionStore, Depends(get_version_store)],
) -> BranchRecord:
    return store.create_branch(
        principal, document_id, request.name, parent_branch_id=request.parent_branch_id
    )


@router.get("/branches/{branch_id}", response_model=BranchRecord)
def get_branch(
    branch_id: uuid.UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    store: Annotated[VersionStore, Depends(get_version_store)],
) -> BranchRecord:
    return store.get_branch(principal, branch_id)


@router.get("/branches/{branch_id}/versions", response_model=list[VersionRecord])
def list_versions(
    branch_id: uuid.UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    store: Annotated[VersionStore, Depends(get_version_store)],
) -> list[VersionRecord]:
    """List versions on a branch, oldest first."""
    return store.list_versions(principal, branch_id)


@router.post(
    "/branches/{branch_id}/versions",
    response_model=VersionRef,
    status_code=status.HTTP_201_CREATED,
)
def create_version(
    branch_id: uuid.UUID,
    request: CreateVersionRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    store: Annotated[VersionStore, Depends(get_version_store)],
) -> VersionRef:
    return store.create_version(
        principal,
        branch_id,
        request.content,
        request.commit_message,
        author_type=request.author_type,
    )


# Declared before /versions/{version_id} so "compare" is not parsed as an id
@router.get("/versions/compare", response_model=CompareResponse)
def compare_versions(
    principal: Annotated[Principal, Depends(get_current_principal)],
    store: Annotated[VersionStore, Depends(get_version_store)],
    from_version_id: Annotated[uuid.UUID, Query()],
    to_version_id: Annotated[uuid.UUID, Query()],
) -> CompareResponse:
    """Positional line diff between two versions of one document."""
    diff = store.compare_versions(principal, from_version_id, to_version_id)
    return CompareResponse(
        from_version_id=from_version_id,
        to_version_id=to_version_id,
        diff=diff,
        summary=summarize_diff(diff),
    )


@router.get("/versions/{version_id}", response_model=VersionRecord)
def get_version(
    version_id: uuid.UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    store: Annotated[VersionStore, Depends(get_version_store)],
) -> VersionRecord:
    return store.get_version(principal, version_id)


@router.get(
    "/documents/{document_id}/branch-requests", response_model=list[BranchRequestRecord]
)
def list_branch_requests(
    document_id: uuid.UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[BranchRequestService, Depends(get_branch_requests)],
    request_status: Annotated[BranchRequestStatus | None, Query(alias="status")] = None,
) -> list[BranchRequestRecord]:
    return service.list_branch_requests(principal, document_id, status=request_status)


@router.post(
    "/documents/{document_id}/branch-requests",
    response_model=BranchRequestRecord,
    status_code=status.HTTP_201_CREATED,
)
def request_branch(
    document_id: uuid.UUID,
    request: FileBranchRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[BranchRequestService, Depends(get_branch_requests)],
) -> BranchRequestRecord:
    return service.request_branch(
        principal,
        document_id,
        request.proposed_name,
        reason=request.reason,
        requested_by_id=request.requested_by_id,
    )


@router.post("/branch-requests/{request_id}/respond", response_model=BranchRequestRecord)
def respond_to_branch_request(
    request_id: uuid.UUID,
    request: RespondRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[BranchRequestService, Depends(get_branch_requests)],
) -> BranchRequestRecord:
    """Approve (creating the branch) or reject a pending branch request."""
    return service.respond_to_branch_request(
        principal, request_id, request.approve, final_name=request.final_name
    )
