"""Document and chat lifecycle."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.docflow.access.policy import require_access, require_owner
from backend.docflow.config import Settings, get_settings
from backend.docflow.db.context import Principal
from backend.docflow.db.models import Chat, Document
from backend.docflow.db.queries import load_document, query_accessible_documents
from backend.docflow.db.transactions import run_atomic
from backend.docflow.errors import ForbiddenError
from backend.docflow.models.common import AuthorType, DocumentKind, Visibility
from backend.docflow.models.documents import ChatRecord, DocumentRecord
from backend.docflow.utils.logging import audit_log
from backend.docflow.utils.metrics import metrics
from backend.docflow.versioning.store import VersionStore

logger = logging.getLogger(__name__)


def _check_scope(
    principal: Principal,
    visibility: Visibility,
    organization_id: UUID | None,
    team_id: UUID | None,
) -> tuple[UUID | None, UUID | None]:
    """Validate and default the organization/team scope of new content."""
    if visibility is Visibility.organization:
        organization_id = organization_id or principal.org_id
        if organization_id is None:
            raise ValueError("Organization visibility requires an organization")
        if organization_id != principal.org_id:
            raise ForbiddenError("You are not acting in this organization")
    if visibility is Visibility.team:
        if team_id is None:
            raise ValueError("Team visibility requires a team")
        if not principal.is_team_member(team_id):
            raise ForbiddenError("You are not a member of this team")
    return organization_id, team_id


class DocumentService:
    """Creates, reads and deletes documents and chats."""

    def __init__(
        self,
        session: Session,
        settings: Settings | None = None,
        versions: VersionStore | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._versions = versions or VersionStore(session, self._settings)

    def create_document(
        self,
        principal: Principal,
        title: str,
        content: str = "",
        kind: DocumentKind = DocumentKind.text,
        visibility: Visibility = Visibility.private,
        organization_id: UUID | None = None,
        team_id: UUID | None = None,
    ) -> DocumentRecord:
        """Create a document with its default branch and version 1.

        Raises:
            ForbiddenError: Anonymous caller or scope the caller is not in
            ValueError: Empty title or incomplete scope
        """
        if not principal.is_authenticated:
            raise ForbiddenError("Sign in to create documents")
        title = title.strip()
        if not title:
            raise ValueError("Document title is required")
        organization_id, team_id = _check_scope(principal, visibility, organization_id, team_id)

        def work() -> Document:
            document = Document(
                title=title,
                content=content,
                kind=kind.value,
                visibility=visibility.value,
                user_id=principal.user_id,
                organization_id=organization_id,
                team_id=team_id,
            )
            self._session.add(document)
            self._session.flush()

            branch = self._versions.ensure_default_branch(document, author_id=principal.user_id)
            self._versions.append_version(
                branch,
                content=content,
                commit_message=self._settings.initial_commit_message,
                author_type=AuthorType.user,
                author_id=principal.user_id,
            )
            return document

        document = run_atomic(self._session, work)
        metrics.inc_version(AuthorType.user.value)
        audit_log.log_transition(
            principal, "document.create", "success", document_id=document.document_id
        )
        return DocumentRecord.model_validate(document)

    def get_document(self, principal: Principal, document_id: UUID) -> DocumentRecord:
        document = load_document(self._session, document_id)
        require_access(principal, document)
        return DocumentRecord.model_validate(document)

    def list_documents(
        self, principal: Principal, include_shared: bool = False
    ) -> list[DocumentRecord]:
        """List the principal's own documents, newest first.

        With ``include_shared`` the listing also covers every document the
        principal can read through visibility.
        """
        if include_shared:
            stmt = query_accessible_documents(principal)
        elif principal.user_id is None:
            return []
        else:
            stmt = (
                select(Document)
                .where(Document.user_id == principal.user_id)
                .order_by(Document.created_at.desc())
            )
        documents = self._session.execute(stmt).scalars()
        return [DocumentRecord.model_validate(d) for d in documents]

    def delete_document(self, principal: Principal, document_id: UUID) -> None:
        """Delete a document and everything hanging off it. Owner only."""

        def work() -> None:
            document = load_document(self._session, document_id)
            require_owner(principal, document, "document")
            self._session.delete(document)
            self._session.flush()

        run_atomic(self._session, work)
        audit_log.log_transition(principal, "document.delete", "success", document_id=document_id)

    def create_chat(
        self,
        principal: Principal,
        title: str,
        visibility: Visibility = Visibility.private,
        organization_id: UUID | None = None,
        team_id: UUID | None = None,
    ) -> ChatRecord:
        if not principal.is_authenticated:
            raise ForbiddenError("Sign in to create chats")
        organization_id, team_id = _check_scope(principal, visibility, organization_id, team_id)

        def work() -> Chat:
            chat = Chat(
                title=title.strip() or "New Chat",
                user_id=principal.user_id,
                visibility=visibility.value,
                organization_id=organization_id,
                team_id=team_id,
            )
            self._session.add(chat)
            self._session.flush()
            return chat

        chat = run_atomic(self._session, work)
        return ChatRecord.model_validate(chat)
