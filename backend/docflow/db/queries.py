"""Lookup helpers and visibility-safe query builders."""

from uuid import UUID

from sqlalchemy import ColumnElement, Select, and_, false, func, or_, select
from sqlalchemy.orm import Session

from backend.docflow.db.context import Principal
from backend.docflow.db.models import Chat, Document, DocumentBranch, PendingChange
from backend.docflow.errors import NotFoundError
from backend.docflow.models.common import ChangeState, Visibility


def load_document(session: Session, document_id: UUID) -> Document:
    """Load a document or raise NotFoundError."""
    document = session.get(Document, document_id)
    if document is None:
        raise NotFoundError("Document not found")
    return document


def load_chat(session: Session, chat_id: UUID) -> Chat:
    """Load a chat or raise NotFoundError."""
    chat = session.get(Chat, chat_id)
    if chat is None:
        raise NotFoundError("Chat not found")
    return chat


def load_branch(session: Session, branch_id: UUID) -> tuple[DocumentBranch, Document]:
    """Load a branch and its parent document.

    Raises:
        NotFoundError: If the branch or its parent document is absent
    """
    branch = session.get(DocumentBranch, branch_id)
    if branch is None:
        raise NotFoundError("Branch not found")
    document = session.get(Document, branch.document_id)
    if document is None:
        raise NotFoundError("Parent document not found")
    return branch, document


def document_visibility_clause(principal: Principal) -> ColumnElement[bool]:
    """SQL counterpart of ``can_access`` for listing documents.

    Args:
        principal: Caller identity and memberships

    Returns:
        Boolean clause selecting documents the principal may read
    """
    clauses: list[ColumnElement[bool]] = [Document.visibility == Visibility.public.value]
    if principal.user_id is not None:
        clauses.append(Document.user_id == principal.user_id)
    if principal.org_id is not None:
        clauses.append(
            and_(
                Document.visibility == Visibility.organization.value,
                Document.organization_id == principal.org_id,
            )
        )
    if principal.team_roles:
        clauses.append(
            and_(
                Document.visibility == Visibility.team.value,
                Document.team_id.in_(list(principal.team_roles)),
            )
        )
    return or_(false(), *clauses)


def query_accessible_documents(principal: Principal) -> Select[tuple[Document]]:
    """Select documents readable by the principal, newest first."""
    return (
        select(Document)
        .where(document_visibility_clause(principal))
        .order_by(Document.created_at.desc())
    )


def count_proposed_changes(session: Session, document_id: UUID) -> int:
    """Number of changes still awaiting a decision on a document."""
    return session.execute(
        select(func.count())
        .select_from(PendingChange)
        .where(
            PendingChange.document_id == document_id,
            PendingChange.state == ChangeState.proposed.value,
        )
    ).scalar_one()


def default_branch_query(document_id: UUID) -> Select[tuple[DocumentBranch]]:
    """Select the default branch of a document."""
    return select(DocumentBranch).where(
        DocumentBranch.document_id == document_id, DocumentBranch.is_default.is_(True)
    )
