"""Pending change lifecycle: propose, then accept or reject.

State machine::

    proposed --accept--> accepted
    proposed --reject--> rejected

Both targets are terminal. Transitions are a single conditional UPDATE on
``state = 'proposed'``, so of two concurrent resolutions exactly one wins
and the other gets ConflictError.
"""

import logging
from collections.abc import Callable
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from backend.docflow.access.policy import require_access, require_edit
from backend.docflow.config import Settings, get_settings
from backend.docflow.db.context import Principal
from backend.docflow.db.models import Document, PendingChange, utcnow
from backend.docflow.db.queries import count_proposed_changes, load_document
from backend.docflow.db.transactions import is_version_number_conflict, run_atomic
from backend.docflow.diff.engine import compute_diff
from backend.docflow.errors import ConflictError, ForbiddenError, GenerationError, NotFoundError
from backend.docflow.llm.client import TextGenerator
from backend.docflow.models.changes import ChangeSet, PendingChangeRecord, ResolutionResult
from backend.docflow.models.common import AuthorType, ChangeState, ChangeType
from backend.docflow.models.versions import VersionRef
from backend.docflow.utils.logging import audit_log
from backend.docflow.utils.metrics import metrics
from backend.docflow.versioning.store import VersionStore

logger = logging.getLogger(__name__)

PUSH_COMMIT_MESSAGE = "Push local changes"


def accept_commit_message(description: str) -> str:
    return f"Accept change: {description}"


class PendingChangeManager:
    """Stages edits against a document and resolves them."""

    def __init__(
        self,
        session: Session,
        settings: Settings | None = None,
        versions: VersionStore | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._versions = versions or VersionStore(session, self._settings)

    def propose(
        self,
        principal: Principal,
        document_id: UUID,
        description: str,
        proposed_content: str,
        author_type: AuthorType = AuthorType.user,
        change_type: ChangeType | None = None,
        author_id: UUID | None = None,
    ) -> PendingChangeRecord:
        """Stage a change; the live content is not touched.

        Any reader may suggest a change. Only editors may resolve it.

        Raises:
            ForbiddenError: Anonymous caller, or the document is not readable
            NotFoundError: Document absent
            ValueError: Empty description
        """
        if not principal.is_authenticated:
            raise ForbiddenError("Sign in to propose changes")

        description = description.strip()
        if not description:
            raise ValueError("Change description is required")

        if change_type is None:
            change_type = (
                ChangeType.ai_suggestion if author_type is AuthorType.ai else ChangeType.user_edit
            )
        if author_id is None and author_type is AuthorType.user:
            author_id = principal.user_id

        def work() -> tuple[PendingChange, int]:
            document = load_document(self._session, document_id)
            require_access(principal, document)

            diff = compute_diff(document.content, proposed_content)
            payload = ChangeSet(
                original_content=document.content,
                proposed_content=proposed_content,
                diff=diff,
            )
            change = PendingChange(
                document_id=document.document_id,
                document_created_at=document.created_at,
                state=ChangeState.proposed.value,
                description=description,
                changes=payload.model_dump(mode="json"),
                change_type=change_type.value,
                author_type=author_type.value,
                author_id=author_id,
            )
            self._session.add(change)
            document.has_unpushed_changes = True
            self._session.flush()
            return change, len(diff)

        change, diff_size = run_atomic(self._session, work)

        metrics.inc_change("proposed")
        metrics.observe_diff(diff_size)
        audit_log.log_transition(
            principal,
            "change.propose",
            "success",
            document_id=document_id,
            change_id=change.change_id,
            author_type=author_type.value,
            diff_entries=diff_size,
        )
        return PendingChangeRecord.model_validate(change)

    async def propose_generated(
        self,
        principal: Principal,
        document_id: UUID,
        description: str,
        generator: TextGenerator,
        author_id: UUID | None = None,
    ) -> PendingChangeRecord:
        """Ask the generator for a revision and stage it as an AI suggestion.

        The generation call happens before any transaction opens. Nothing
        is persisted when generation fails.

        Raises:
            GenerationError: Provider failure or empty output
        """
        if not principal.is_authenticated:
            raise ForbiddenError("Sign in to propose changes")
        if not description.strip():
            raise ValueError("Change description is required")

        document = load_document(self._session, document_id)
        require_access(principal, document)
        title, kind, content = document.title, document.kind, document.content
        # Release the read transaction before the slow call
        self._session.rollback()

        try:
            revised = await generator.generate_revision(
                title=title, kind=kind, content=content, description=description
            )
        except Exception as e:
            reason = e.message if isinstance(e, GenerationError) else type(e).__name__
            metrics.inc_generation_failure("provider_error")
            audit_log.log_transition(
                principal, "change.generate", "failed", document_id=document_id, reason=reason
            )
            if isinstance(e, GenerationError):
                raise
            raise GenerationError(f"Generation failed: {reason}") from e

        if not revised or not revised.strip():
            metrics.inc_generation_failure("empty_output")
            audit_log.log_transition(
                principal, "change.generate", "failed", document_id=document_id, reason="empty"
            )
            raise GenerationError("Generation returned empty content")

        return self.propose(
            principal,
            document_id,
            description,
            revised,
            author_type=AuthorType.ai,
            author_id=author_id,
        )

    def accept(
        self, principal: Principal, change_id: UUID, new_content: str | None = None
    ) -> ResolutionResult:
        """Accept a proposed change and commit it as a new version.

        The state transition, the content replacement and the version append
        share one transaction; any failure leaves all three untouched.

        Args:
            principal: Caller; must be able to edit the document
            change_id: Change to accept
            new_content: Content to apply instead of the proposed content

        Raises:
            NotFoundError: Change or its document absent
            ForbiddenError: Principal cannot edit the document
            ConflictError: Change is no longer proposed
        """

        def work() -> ResolutionResult:
            change, document = self._load_for_resolution(principal, change_id)
            self._transition(change_id, ChangeState.accepted, principal)

            payload = ChangeSet.model_validate(change.changes)
            content = new_content if new_content is not None else payload.proposed_content
            document.content = content
            document.updated_at = utcnow()

            branch = self._versions.ensure_default_branch(document)
            version = self._versions.append_version(
                branch,
                content=content,
                commit_message=accept_commit_message(change.description),
                author_type=AuthorType.user,
                author_id=principal.user_id,
                proposed_by_type=AuthorType(change.author_type),
                proposed_by_id=change.author_id,
            )
            change.accepted_version_id = version.version_id
            self._session.flush()
            self._refresh_unpushed_flag(document)

            return ResolutionResult(
                change_id=change_id,
                state=ChangeState.accepted,
                version_id=version.version_id,
                version_number=version.version_number,
            )

        result = self._resolve(principal, "change.accept", change_id, work)
        metrics.inc_version(AuthorType.user.value)
        return result

    def reject(self, principal: Principal, change_id: UUID) -> ResolutionResult:
        """Reject a proposed change. Content and history are untouched.

        Raises:
            NotFoundError: Change or its document absent
            ForbiddenError: Principal cannot edit the document
            ConflictError: Change is no longer proposed
        """

        def work() -> ResolutionResult:
            _, document = self._load_for_resolution(principal, change_id)
            self._transition(change_id, ChangeState.rejected, principal)
            self._refresh_unpushed_flag(document)
            return ResolutionResult(change_id=change_id, state=ChangeState.rejected)

        return self._resolve(principal, "change.reject", change_id, work)

    def list_pending(self, principal: Principal, document_id: UUID) -> list[PendingChangeRecord]:
        """List proposed changes on a document, oldest first."""
        document = load_document(self._session, document_id)
        require_access(principal, document)
        changes = self._session.execute(
            select(PendingChange)
            .where(
                PendingChange.document_id == document_id,
                PendingChange.state == ChangeState.proposed.value,
            )
            .order_by(PendingChange.created_at)
        ).scalars()
        return [PendingChangeRecord.model_validate(c) for c in changes]

    def get_change(self, principal: Principal, change_id: UUID) -> PendingChangeRecord:
        change = self._load_change(change_id)
        document = load_document(self._session, change.document_id)
        require_access(principal, document)
        return PendingChangeRecord.model_validate(change)

    def push_local_changes(
        self,
        principal: Principal,
        document_id: UUID,
        content: str,
        commit_message: str | None = None,
    ) -> VersionRef:
        """Commit a direct edit: replace content and append a version atomically.

        Raises:
            NotFoundError: Document absent
            ForbiddenError: Principal cannot edit the document
        """

        def work() -> VersionRef:
            document = load_document(self._session, document_id)
            require_edit(principal, document)

            document.content = content
            document.updated_at = utcnow()
            branch = self._versions.ensure_default_branch(document)
            version = self._versions.append_version(
                branch,
                content=content,
                commit_message=commit_message or PUSH_COMMIT_MESSAGE,
                author_type=AuthorType.user,
                author_id=principal.user_id,
            )
            self._refresh_unpushed_flag(document)
            return VersionRef(version_id=version.version_id, version_number=version.version_number)

        ref = run_atomic(
            self._session,
            work,
            retries=self._settings.version_append_retries,
            retry_if=is_version_number_conflict,
        )
        metrics.inc_version(AuthorType.user.value)
        audit_log.log_transition(
            principal,
            "document.push",
            "success",
            document_id=document_id,
            version_number=ref.version_number,
        )
        return ref

    # -- internals --

    def _load_change(self, change_id: UUID) -> PendingChange:
        change = self._session.get(PendingChange, change_id)
        if change is None:
            raise NotFoundError("Change not found")
        return change

    def _load_for_resolution(
        self, principal: Principal, change_id: UUID
    ) -> tuple[PendingChange, Document]:
        change = self._load_change(change_id)
        document = load_document(self._session, change.document_id)
        require_edit(principal, document)
        return change, document

    def _transition(self, change_id: UUID, target: ChangeState, principal: Principal) -> None:
        """Move a change out of ``proposed``; ConflictError if it already left."""
        result = self._session.execute(
            update(PendingChange)
            .where(
                PendingChange.change_id == change_id,
                PendingChange.state == ChangeState.proposed.value,
            )
            .values(state=target.value, resolved_at=utcnow(), resolved_by=principal.user_id)
            .execution_options(synchronize_session="evaluate")
        )
        if result.rowcount == 0:
            raise ConflictError("Change has already been resolved")

    def _refresh_unpushed_flag(self, document: Document) -> None:
        document.has_unpushed_changes = (
            count_proposed_changes(self._session, document.document_id) > 0
        )

    def _resolve(
        self,
        principal: Principal,
        action: str,
        change_id: UUID,
        work: Callable[[], ResolutionResult],
    ) -> ResolutionResult:
        try:
            result = run_atomic(
                self._session,
                work,
                retries=self._settings.version_append_retries,
                retry_if=is_version_number_conflict,
            )
        except ConflictError:
            metrics.inc_change("conflict")
            audit_log.log_transition(principal, action, "conflict", change_id=change_id)
            raise

        metrics.inc_change(result.state.value)
        audit_log.log_transition(principal, action, "success", change_id=change_id)
        return result
