"""Resolve a workspace entry id to a document view or a chat view."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from backend.docflow.access.policy import can_access_item, is_owner, require_edit
from backend.docflow.db.context import Principal
from backend.docflow.db.models import Chat, ChatDocumentLink, Document, utcnow
from backend.docflow.db.queries import count_proposed_changes, load_document
from backend.docflow.db.transactions import run_atomic
from backend.docflow.errors import NotFoundError
from backend.docflow.links.registry import LinkRegistry
from backend.docflow.models.common import LinkType, ViewMode, Visibility
from backend.docflow.models.documents import ChatRecord, DocumentSummary
from backend.docflow.models.workspace import ChatWorkspaceData, DocumentWorkspaceData
from backend.docflow.utils.logging import audit_log

logger = logging.getLogger(__name__)

DEFAULT_VIEW_MODE = ViewMode.document


def _read_only_grant(principal: Principal, document: Document) -> bool:
    """Non-owner visibility that opens the workspace in read-only mode."""
    if document.visibility == Visibility.public.value:
        return True
    return (
        document.visibility == Visibility.organization.value
        and document.organization_id is not None
        and principal.org_id == document.organization_id
    )


class WorkspaceResolver:
    """Turns an entry id into the data a workspace needs to render."""

    def __init__(self, session: Session, links: LinkRegistry | None = None) -> None:
        self._session = session
        self._links = links or LinkRegistry(session)

    def resolve(
        self, principal: Principal, entry_id: UUID
    ) -> DocumentWorkspaceData | ChatWorkspaceData:
        """Resolve ``entry_id``; documents take precedence over chats.

        Raises:
            NotFoundError: Unknown id, or an entry the principal may not open.
                Denials are reported as not found so existence is not leaked.
        """
        document = self._session.get(Document, entry_id)
        if document is not None:
            return self._resolve_document(principal, document)

        chat = self._session.get(Chat, entry_id)
        if chat is not None:
            return self._resolve_chat(principal, chat)

        raise NotFoundError("Content not found")

    def update_view_mode(
        self, principal: Principal, document_id: UUID, view_mode: ViewMode
    ) -> ViewMode:
        """Persist the preferred view mode for a document.

        Raises:
            NotFoundError: Document absent
            ForbiddenError: Principal cannot edit the document
        """

        def work() -> ViewMode:
            document = load_document(self._session, document_id)
            require_edit(principal, document)
            document.last_view_mode = view_mode.value
            self._session.flush()
            return view_mode

        return run_atomic(self._session, work)

    def _resolve_document(
        self, principal: Principal, document: Document
    ) -> DocumentWorkspaceData:
        owner = is_owner(principal, document.user_id)
        # Team-only access does not open a workspace for non-owners
        if not can_access_item(principal, document) or (
            not owner and not _read_only_grant(principal, document)
        ):
            audit_log.log_transition(
                principal, "workspace.resolve", "denied", document_id=document.document_id
            )
            raise NotFoundError("Content not found")

        document_id = document.document_id
        view_mode = (
            ViewMode(document.last_view_mode) if document.last_view_mode else DEFAULT_VIEW_MODE
        )

        def record_access() -> None:
            current = load_document(self._session, document_id)
            current.last_accessed_at = utcnow()
            current.last_view_mode = view_mode.value
            self._session.flush()

        run_atomic(self._session, record_access)

        data = DocumentWorkspaceData(
            document=DocumentSummary.model_validate(document),
            content=document.content,
            view_mode=view_mode,
            is_owner=owner,
            is_read_only=not owner and _read_only_grant(principal, document),
            main_chat_id=document.current_main_chat_id,
            linked_chats=self._links.list_document_chats(principal, document_id),
            pending_change_count=count_proposed_changes(self._session, document_id),
        )
        audit_log.log_transition(
            principal,
            "workspace.resolve",
            "success",
            document_id=document_id,
            entry_type="document",
            view_mode=view_mode.value,
        )
        return data

    def _resolve_chat(self, principal: Principal, chat: Chat) -> ChatWorkspaceData:
        if not can_access_item(principal, chat):
            audit_log.log_transition(principal, "workspace.resolve", "denied", chat_id=chat.chat_id)
            raise NotFoundError("Content not found")

        owner = is_owner(principal, chat.user_id)
        linked_document: DocumentSummary | None = None
        link_type: LinkType | None = None

        link = self._session.get(ChatDocumentLink, chat.chat_id)
        if link is not None:
            document = self._session.get(Document, link.document_id)
            if document is not None and can_access_item(principal, document):
                linked_document = DocumentSummary.model_validate(document)
                link_type = LinkType(link.link_type)

        audit_log.log_transition(
            principal, "workspace.resolve", "success", chat_id=chat.chat_id, entry_type="chat"
        )
        return ChatWorkspaceData(
            chat=ChatRecord.model_validate(chat),
            is_owner=owner,
            is_read_only=not owner,
            linked_document=linked_document,
            link_type=link_type,
        )
