"""Models package - re-exports for convenience."""

from backend.docflow.models.changes import ChangeSet, PendingChangeRecord, ResolutionResult
from backend.docflow.models.common import (
    AuthorType,
    BranchRequestStatus,
    ChangeState,
    ChangeType,
    DocumentKind,
    LinkType,
    ViewMode,
    Visibility,
)
from backend.docflow.models.diff import AddedLine, DiffEntry, DiffSummary, ModifiedLine, RemovedLine
from backend.docflow.models.documents import (
    ChatLinkRecord,
    ChatRecord,
    DocumentRecord,
    DocumentSummary,
    LinkedChat,
)
from backend.docflow.models.versions import (
    BranchRecord,
    BranchRequestRecord,
    VersionRecord,
    VersionRef,
)
from backend.docflow.models.workspace import (
    ChatWorkspaceData,
    DocumentWorkspaceData,
    WorkspaceEntry,
)

__all__ = [
    # Common
    "Visibility",
    "DocumentKind",
    "AuthorType",
    "ChangeState",
    "ChangeType",
    "LinkType",
    "ViewMode",
    "BranchRequestStatus",
    # Diff
    "DiffEntry",
    "AddedLine",
    "RemovedLine",
    "ModifiedLine",
    "DiffSummary",
    # Documents and chats
    "DocumentRecord",
    "DocumentSummary",
    "ChatRecord",
    "ChatLinkRecord",
    "LinkedChat",
    # Versions
    "BranchRecord",
    "VersionRecord",
    "VersionRef",
    "BranchRequestRecord",
    # Changes
    "ChangeSet",
    "PendingChangeRecord",
    "ResolutionResult",
    # Workspace
    "DocumentWorkspaceData",
    "ChatWorkspaceData",
    "WorkspaceEntry",
]
