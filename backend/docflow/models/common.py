"""Common enums shared across all models."""

from enum import Enum


class Visibility(str, Enum):
    """Access tier of a document or chat."""

    private = "private"
    public = "public"
    organization = "organization"
    team = "team"


class DocumentKind(str, Enum):
    """Document kind; opaque to the versioning core."""

    text = "text"
    code = "code"
    sheet = "sheet"
    image = "image"


class AuthorType(str, Enum):
    """Who authored a version, change or branch."""

    user = "user"
    ai = "ai"


class ChangeState(str, Enum):
    """Pending change lifecycle. accepted and rejected are terminal."""

    proposed = "proposed"
    accepted = "accepted"
    rejected = "rejected"


class ChangeType(str, Enum):
    """Origin of a proposed change."""

    ai_suggestion = "ai_suggestion"
    user_edit = "user_edit"


class LinkType(str, Enum):
    """Relationship between a chat and a document."""

    created = "created"
    main = "main"
    referenced = "referenced"
    modified = "modified"


class ViewMode(str, Enum):
    """Workspace rendering mode."""

    document = "document"
    chat = "chat"
    split = "split"


class BranchRequestStatus(str, Enum):
    """Branch request lifecycle. approved and rejected are terminal."""

    pending = "pending"
    approved = "approved"
    rejected = "rejected"
