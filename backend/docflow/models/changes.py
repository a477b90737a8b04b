"""Pending change domain models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from backend.docflow.models.common import AuthorType, ChangeState, ChangeType
from backend.docflow.models.diff import DiffEntry


class ChangeSet(BaseModel):
    """Payload stored with a pending change."""

    original_content: str
    proposed_content: str
    diff: list[DiffEntry]


class PendingChangeRecord(BaseModel):
    """Staged edit proposal."""

    model_config = ConfigDict(from_attributes=True)

    change_id: UUID
    document_id: UUID
    document_created_at: datetime
    state: ChangeState
    description: str
    changes: ChangeSet
    change_type: ChangeType
    author_type: AuthorType
    author_id: UUID | None = None
    created_at: datetime
    resolved_at: datetime | None = None
    resolved_by: UUID | None = None
    accepted_version_id: UUID | None = None


class ResolutionResult(BaseModel):
    """Outcome of accepting or rejecting a change."""

    success: bool = True
    change_id: UUID
    state: ChangeState
    version_id: UUID | None = None
    version_number: int | None = None
