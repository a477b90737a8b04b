"""Chat-document associations and the per-document main chat.

A chat links to at most one document (the link row is keyed by chat id).
A document designates at most one main chat through
``Document.current_main_chat_id``.
"""

import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from backend.docflow.access.policy import (
    can_access_item,
    require_access,
    require_edit,
    require_owner,
)
from backend.docflow.config import Settings, get_settings
from backend.docflow.db.context import Principal
from backend.docflow.db.models import Chat, ChatDocumentLink, Document, utcnow
from backend.docflow.db.queries import load_chat, load_document
from backend.docflow.db.transactions import run_atomic
from backend.docflow.errors import ConflictError
from backend.docflow.models.common import LinkType
from backend.docflow.models.documents import (
    ChatLinkRecord,
    ChatRecord,
    DocumentRecord,
    LinkedChat,
)
from backend.docflow.utils.logging import audit_log

logger = logging.getLogger(__name__)


class _MainChatSuperseded(Exception):
    """Another caller set the main chat first; roll back our insert."""


class LinkRegistry:
    """Links chats to documents and tracks each document's main chat."""

    def __init__(self, session: Session, settings: Settings | None = None) -> None:
        self._session = session
        self._settings = settings or get_settings()

    def link_main_chat(
        self, principal: Principal, document_id: UUID, chat_id: UUID
    ) -> ChatLinkRecord:
        """Make ``chat_id`` the document's main chat, superseding any previous one.

        The previous main chat keeps its link, demoted to ``referenced``.

        Raises:
            NotFoundError: Document or chat absent
            ForbiddenError: Principal cannot edit the document or does not own the chat
        """

        def work() -> ChatDocumentLink:
            document = load_document(self._session, document_id)
            require_edit(principal, document)
            chat = load_chat(self._session, chat_id)
            require_owner(principal, chat, "chat")

            previous_id = document.current_main_chat_id
            if previous_id is not None and previous_id != chat_id:
                previous = self._session.get(ChatDocumentLink, previous_id)
                if (
                    previous is not None
                    and previous.document_id == document_id
                    and previous.link_type == LinkType.main.value
                ):
                    previous.link_type = LinkType.referenced.value

            self._clear_main_pointer(chat_id, keep_document_id=document_id)
            link = self._upsert_link(chat, document, LinkType.main)
            document.current_main_chat_id = chat.chat_id
            self._session.flush()
            return link

        link = run_atomic(self._session, work)
        audit_log.log_transition(
            principal, "main_chat.link", "success", document_id=document_id, chat_id=chat_id
        )
        return ChatLinkRecord.model_validate(link)

    def create_main_chat_if_absent(
        self, principal: Principal, document_id: UUID, title: str | None = None
    ) -> UUID:
        """Return the document's main chat id, creating the chat if none is set.

        Concurrent callers converge on one chat: each inserts its own chat,
        then claims the pointer with a conditional UPDATE. A caller whose
        UPDATE matches no row rolls back and returns the winner's id.

        Raises:
            NotFoundError: Document absent
            ForbiddenError: Principal cannot edit the document
        """
        document = load_document(self._session, document_id)
        require_edit(principal, document)
        if document.current_main_chat_id is not None:
            return document.current_main_chat_id

        def work() -> UUID:
            document = load_document(self._session, document_id)
            if document.current_main_chat_id is not None:
                return document.current_main_chat_id

            chat = self._new_main_chat(principal, document, title)
            self._session.add(chat)
            self._session.flush()
            self._session.add(
                ChatDocumentLink(
                    chat_id=chat.chat_id,
                    document_id=document.document_id,
                    document_created_at=document.created_at,
                    link_type=LinkType.main.value,
                )
            )
            self._session.flush()

            claimed = self._session.execute(
                update(Document)
                .where(
                    Document.document_id == document_id,
                    Document.current_main_chat_id.is_(None),
                )
                .values(current_main_chat_id=chat.chat_id)
                .execution_options(synchronize_session="evaluate")
            )
            if claimed.rowcount == 0:
                raise _MainChatSuperseded()
            return chat.chat_id

        try:
            chat_id = run_atomic(self._session, work)
        except _MainChatSuperseded:
            winner = load_document(self._session, document_id).current_main_chat_id
            if winner is None:
                raise ConflictError("Main chat was cleared concurrently") from None
            audit_log.log_transition(
                principal,
                "main_chat.create",
                "superseded",
                document_id=document_id,
                chat_id=winner,
            )
            return winner

        audit_log.log_transition(
            principal, "main_chat.create", "success", document_id=document_id, chat_id=chat_id
        )
        return chat_id

    def _new_main_chat(
        self, principal: Principal, document: Document, title: str | None
    ) -> Chat:
        return Chat(
            title=title or f"{self._settings.main_chat_title_prefix}{document.title}",
            user_id=principal.user_id,
            visibility=document.visibility,
            organization_id=document.organization_id,
            team_id=document.team_id,
        )

    def link_chat(
        self,
        principal: Principal,
        chat_id: UUID,
        document_id: UUID,
        link_type: LinkType = LinkType.created,
    ) -> ChatLinkRecord:
        """Link a chat to a document, replacing any link it already has.

        Raises:
            ValueError: ``link_type`` is main (use ``link_main_chat``)
            NotFoundError: Chat or document absent
            ForbiddenError: Principal does not own both the chat and the document
        """
        if link_type is LinkType.main:
            raise ValueError("Use link_main_chat to designate a main chat")

        def work() -> ChatDocumentLink:
            chat = load_chat(self._session, chat_id)
            require_owner(principal, chat, "chat")
            document = load_document(self._session, document_id)
            require_owner(principal, document, "document")
            self._clear_main_pointer(chat_id)
            link = self._upsert_link(chat, document, link_type)
            self._session.flush()
            return link

        link = run_atomic(self._session, work)
        audit_log.log_transition(
            principal,
            "chat.link",
            "success",
            document_id=document_id,
            chat_id=chat_id,
            link_type=link_type.value,
        )
        return ChatLinkRecord.model_validate(link)

    def unlink_chat(self, principal: Principal, chat_id: UUID) -> bool:
        """Remove a chat's link. Unlinking a main chat clears the document's pointer.

        Returns:
            True if a link was removed, False if the chat was not linked

        Raises:
            NotFoundError: Chat absent
            ForbiddenError: Principal does not own both the chat and the linked document
        """

        def work() -> bool:
            chat = load_chat(self._session, chat_id)
            require_owner(principal, chat, "chat")
            link = self._session.get(ChatDocumentLink, chat_id)
            if link is None:
                return False
            document = load_document(self._session, link.document_id)
            require_owner(principal, document, "document")
            self._clear_main_pointer(chat_id)
            self._session.delete(link)
            self._session.flush()
            return True

        removed = run_atomic(self._session, work)
        audit_log.log_transition(
            principal, "chat.unlink", "success" if removed else "noop", chat_id=chat_id
        )
        return removed

    def get_linked_document(self, principal: Principal, chat_id: UUID) -> DocumentRecord | None:
        """Return the document a chat is linked to, if any.

        Ownership is checked on the chat and again on the resolved document.

        Raises:
            NotFoundError: Chat absent
            ForbiddenError: Principal owns neither the chat nor the document
        """
        chat = load_chat(self._session, chat_id)
        require_owner(principal, chat, "chat")
        link = self._session.get(ChatDocumentLink, chat_id)
        if link is None:
            return None
        document = self._session.get(Document, link.document_id)
        if document is None:
            return None
        require_owner(principal, document, "document")
        return DocumentRecord.model_validate(document)

    def list_document_chats(self, principal: Principal, document_id: UUID) -> list[LinkedChat]:
        """List chats linked to a document that the principal can read, newest link first."""
        document = load_document(self._session, document_id)
        require_access(principal, document)
        rows = self._session.execute(
            select(ChatDocumentLink, Chat)
            .join(Chat, Chat.chat_id == ChatDocumentLink.chat_id)
            .where(ChatDocumentLink.document_id == document_id)
            .order_by(ChatDocumentLink.linked_at.desc())
        ).all()
        return [
            LinkedChat(
                chat=ChatRecord.model_validate(chat),
                link_type=link.link_type,
                linked_at=link.linked_at,
                is_main=chat.chat_id == document.current_main_chat_id,
            )
            for link, chat in rows
            if can_access_item(principal, chat)
        ]

    def track_modification(
        self, principal: Principal, chat_id: UUID, document_id: UUID
    ) -> ChatLinkRecord:
        """Record that a chat modified a document.

        A ``created`` link on the same document becomes ``modified``; main and
        referenced links keep their type. A chat linked elsewhere (or not at
        all) is relinked here as ``modified``.
        """

        def work() -> ChatDocumentLink:
            chat = load_chat(self._session, chat_id)
            require_owner(principal, chat, "chat")
            document = load_document(self._session, document_id)
            require_edit(principal, document)

            link = self._session.get(ChatDocumentLink, chat_id)
            if link is not None and link.document_id == document_id:
                if link.link_type == LinkType.created.value:
                    link.link_type = LinkType.modified.value
            else:
                self._clear_main_pointer(chat_id)
                link = self._upsert_link(chat, document, LinkType.modified)
            self._session.flush()
            return link

        link = run_atomic(self._session, work)
        return ChatLinkRecord.model_validate(link)

    def _upsert_link(
        self, chat: Chat, document: Document, link_type: LinkType
    ) -> ChatDocumentLink:
        link = self._session.get(ChatDocumentLink, chat.chat_id)
        if link is None:
            link = ChatDocumentLink(chat_id=chat.chat_id)
            self._session.add(link)
        link.document_id = document.document_id
        link.document_created_at = document.created_at
        link.link_type = link_type.value
        link.linked_at = utcnow()
        return link

    def _clear_main_pointer(self, chat_id: UUID, keep_document_id: UUID | None = None) -> None:
        stmt = update(Document).where(Document.current_main_chat_id == chat_id)
        if keep_document_id is not None:
            stmt = stmt.where(Document.document_id != keep_document_id)
        self._session.execute(
            stmt
            .values(current_main_chat_id=None)
            .execution_options(synchronize_session="evaluate")
        )
