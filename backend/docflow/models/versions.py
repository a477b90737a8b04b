"""Branch, version and branch request domain models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from backend.docflow.models.common import AuthorType, BranchRequestStatus


class BranchRecord(BaseModel):
    """Named line of history belonging to one document."""

    model_config = ConfigDict(from_attributes=True)

    branch_id: UUID
    document_id: UUID
    name: str
    parent_branch_id: UUID | None = None
    created_by_type: AuthorType
    created_by_id: UUID | None = None
    is_default: bool = False
    created_at: datetime


class VersionRecord(BaseModel):
    """Immutable full-content snapshot on a branch."""

    model_config = ConfigDict(from_attributes=True)

    version_id: UUID
    branch_id: UUID
    version_number: int = Field(..., ge=1)
    content: str
    commit_message: str | None = None
    author_type: AuthorType
    author_id: UUID | None = None
    proposed_by_type: AuthorType | None = None
    proposed_by_id: UUID | None = None
    parent_version_id: UUID | None = None
    created_at: datetime


class VersionRef(BaseModel):
    """Identifier and number of a freshly appended version."""

    version_id: UUID
    version_number: int


class BranchRequestRecord(BaseModel):
    """AI request to open a new branch, awaiting an editor's decision."""

    model_config = ConfigDict(from_attributes=True)

    request_id: UUID
    document_id: UUID
    proposed_name: str
    reason: str | None = None
    requested_by_type: AuthorType
    requested_by_id: UUID | None = None
    status: BranchRequestStatus
    created_branch_id: UUID | None = None
    created_at: datetime
    responded_at: datetime | None = None
