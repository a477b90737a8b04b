"""Branches and immutable version snapshots."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.docflow.access.policy import require_access, require_edit
from backend.docflow.config import Settings, get_settings
from backend.docflow.db.context import Principal
from backend.docflow.db.models import Document, DocumentBranch, DocumentVersion
from backend.docflow.db.queries import default_branch_query, load_branch, load_document
from backend.docflow.db.transactions import is_version_number_conflict, run_atomic
from backend.docflow.diff.engine import compute_diff
from backend.docflow.errors import NotFoundError
from backend.docflow.models.common import AuthorType
from backend.docflow.models.diff import DiffEntry
from backend.docflow.models.versions import BranchRecord, VersionRecord, VersionRef
from backend.docflow.utils.logging import audit_log
from backend.docflow.utils.metrics import metrics

logger = logging.getLogger(__name__)


class VersionStore:
    """Branch and version operations over one session.

    Public methods check policy and run in their own transaction. The
    ``ensure_default_branch`` and ``append_version`` helpers only flush so
    callers can compose them into a larger transaction.
    """

    def __init__(self, session: Session, settings: Settings | None = None) -> None:
        self._session = session
        self._settings = settings or get_settings()

    # -- composable helpers (no policy, no commit) --

    def ensure_default_branch(
        self,
        document: Document,
        *,
        author_type: AuthorType = AuthorType.user,
        author_id: UUID | None = None,
    ) -> DocumentBranch:
        """Return the document's default branch, creating it if absent."""
        branch = self._session.execute(
            default_branch_query(document.document_id)
        ).scalar_one_or_none()
        if branch is not None:
            return branch

        branch = DocumentBranch(
            document_id=document.document_id,
            name=self._settings.default_branch_name,
            created_by_type=author_type.value,
            created_by_id=author_id,
            is_default=True,
        )
        self._session.add(branch)
        self._session.flush()
        return branch

    def append_version(
        self,
        branch: DocumentBranch,
        *,
        content: str,
        commit_message: str | None,
        author_type: AuthorType,
        author_id: UUID | None,
        proposed_by_type: AuthorType | None = None,
        proposed_by_id: UUID | None = None,
    ) -> DocumentVersion:
        """Append the next numbered snapshot to ``branch``.

        The number is max + 1 read inside the caller's transaction. Two
        concurrent appends that read the same max collide on the
        (branch_id, version_number) constraint at flush; the caller's
        ``run_atomic`` retries the whole unit.
        """
        # Row lock on the branch serializes appenders where the dialect supports it
        self._session.execute(
            select(DocumentBranch.branch_id)
            .where(DocumentBranch.branch_id == branch.branch_id)
            .with_for_update()
        )
        latest = self._session.execute(
            select(DocumentVersion)
            .where(DocumentVersion.branch_id == branch.branch_id)
            .order_by(DocumentVersion.version_number.desc())
            .limit(1)
        ).scalar_one_or_none()

        version = DocumentVersion(
            branch_id=branch.branch_id,
            version_number=latest.version_number + 1 if latest else 1,
            content=content,
            commit_message=commit_message,
            author_type=author_type.value,
            author_id=author_id,
            proposed_by_type=proposed_by_type.value if proposed_by_type else None,
            proposed_by_id=proposed_by_id,
            parent_version_id=latest.version_id if latest else None,
        )
        self._session.add(version)
        self._session.flush()
        return version

    # -- branches --

    def create_branch(
        self,
        principal: Principal,
        document_id: UUID,
        name: str,
        parent_branch_id: UUID | None = None,
        author_type: AuthorType = AuthorType.user,
    ) -> BranchRecord:
        """Create a named branch on a document.

        Raises:
            NotFoundError: Document or parent branch absent
            ForbiddenError: Principal cannot edit the document
            ConflictError: A branch with this name already exists
        """
        name = name.strip()
        if not name:
            raise ValueError("Branch name is required")

        def work() -> DocumentBranch:
            document = load_document(self._session, document_id)
            require_edit(principal, document)
            return self._insert_branch(
                document, name, parent_branch_id, author_type, principal.user_id
            )

        branch = run_atomic(self._session, work)
        audit_log.log_transition(
            principal,
            "branch.create",
            "success",
            document_id=document_id,
            branch_id=branch.branch_id,
        )
        return BranchRecord.model_validate(branch)

    def _insert_branch(
        self,
        document: Document,
        name: str,
        parent_branch_id: UUID | None,
        author_type: AuthorType,
        author_id: UUID | None,
    ) -> DocumentBranch:
        if parent_branch_id is not None:
            parent = self._session.get(DocumentBranch, parent_branch_id)
            if parent is None or parent.document_id != document.document_id:
                raise NotFoundError("Parent branch not found")

        branch = DocumentBranch(
            document_id=document.document_id,
            name=name,
            parent_branch_id=parent_branch_id,
            created_by_type=author_type.value,
            created_by_id=author_id,
            is_default=False,
        )
        self._session.add(branch)
        self._session.flush()
        return branch

    def get_branch(self, principal: Principal, branch_id: UUID) -> BranchRecord:
        branch, document = load_branch(self._session, branch_id)
        require_access(principal, document)
        return BranchRecord.model_validate(branch)

    def list_branches(self, principal: Principal, document_id: UUID) -> list[BranchRecord]:
        """List a document's branches, default branch first."""
        document = load_document(self._session, document_id)
        require_access(principal, document)
        branches = self._session.execute(
            select(DocumentBranch)
            .where(DocumentBranch.document_id == document_id)
            .order_by(DocumentBranch.is_default.desc(), DocumentBranch.created_at)
        ).scalars()
        return [BranchRecord.model_validate(b) for b in branches]

    # -- versions --

    def create_version(
        self,
        principal: Principal,
        branch_id: UUID,
        content: str,
        commit_message: str | None,
        author_type: AuthorType = AuthorType.user,
        author_id: UUID | None = None,
    ) -> VersionRef:
        """Append a snapshot to a branch.

        Args:
            principal: Caller; must be able to edit the parent document
            branch_id: Target branch
            content: Full snapshot content
            commit_message: Optional message
            author_type: user or ai
            author_id: Defaults to the principal for user-authored versions

        Returns:
            Id and number of the new version

        Raises:
            NotFoundError: Branch or parent document absent
            ForbiddenError: Principal cannot edit the document
            ConflictError: Numbering conflict persisted after retries
        """
        if author_id is None and author_type is AuthorType.user:
            author_id = principal.user_id

        def work() -> VersionRef:
            branch, document = load_branch(self._session, branch_id)
            require_edit(principal, document)
            version = self.append_version(
                branch,
                content=content,
                commit_message=commit_message,
                author_type=author_type,
                author_id=author_id,
            )
            return VersionRef(version_id=version.version_id, version_number=version.version_number)

        ref = run_atomic(
            self._session,
            work,
            retries=self._settings.version_append_retries,
            retry_if=is_version_number_conflict,
        )
        metrics.inc_version(author_type.value)
        audit_log.log_transition(
            principal,
            "version.create",
            "success",
            branch_id=branch_id,
            version_number=ref.version_number,
        )
        return ref

    def list_versions(self, principal: Principal, branch_id: UUID) -> list[VersionRecord]:
        """List a branch's versions in ascending number order."""
        _, document = load_branch(self._session, branch_id)
        require_access(principal, document)
        versions = self._session.execute(
            select(DocumentVersion)
            .where(DocumentVersion.branch_id == branch_id)
            .order_by(DocumentVersion.version_number)
        ).scalars()
        return [VersionRecord.model_validate(v) for v in versions]

    def get_version(self, principal: Principal, version_id: UUID) -> VersionRecord:
        version, _ = self._load_version(principal, version_id)
        return VersionRecord.model_validate(version)

    def compare_versions(
        self, principal: Principal, from_version_id: UUID, to_version_id: UUID
    ) -> list[DiffEntry]:
        """Diff two snapshots of the same document.

        Raises:
            NotFoundError: Either version (or its document) is absent
            ValueError: The versions belong to different documents
        """
        older, older_document = self._load_version(principal, from_version_id)
        newer, newer_document = self._load_version(principal, to_version_id)
        if older_document.document_id != newer_document.document_id:
            raise ValueError("Versions belong to different documents")
        return compute_diff(older.content, newer.content)

    def _load_version(
        self, principal: Principal, version_id: UUID
    ) -> tuple[DocumentVersion, Document]:
        version = self._session.get(DocumentVersion, version_id)
        if version is None:
            raise NotFoundError("Version not found")
        _, document = load_branch(self._session, version.branch_id)
        require_access(principal, document)
        return version, document
