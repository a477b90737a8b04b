"""AI-initiated branch requests.

The assistant never opens branches on its own. It files a request; an
editor approves (creating the branch in the same transaction) or rejects.
Both outcomes are terminal.
"""

import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from backend.docflow.access.policy import require_access, require_edit
from backend.docflow.config import Settings, get_settings
from backend.docflow.db.context import Principal
from backend.docflow.db.models import BranchRequest, DocumentBranch, utcnow
from backend.docflow.db.queries import load_document
from backend.docflow.db.transactions import run_atomic
from backend.docflow.errors import ConflictError, NotFoundError
from backend.docflow.models.common import AuthorType, BranchRequestStatus
from backend.docflow.models.versions import BranchRequestRecord
from backend.docflow.utils.logging import audit_log

logger = logging.getLogger(__name__)


class BranchRequestService:
    """Files and resolves branch requests."""

    def __init__(self, session: Session, settings: Settings | None = None) -> None:
        self._session = session
        self._settings = settings or get_settings()

    def request_branch(
        self,
        principal: Principal,
        document_id: UUID,
        proposed_name: str,
        reason: str | None = None,
        requested_by_id: UUID | None = None,
    ) -> BranchRequestRecord:
        """File a pending request for a new branch.

        Raises:
            NotFoundError: Document absent
            ForbiddenError: Principal cannot read the document
            ValueError: Empty proposed name
        """
        proposed_name = proposed_name.strip()
        if not proposed_name:
            raise ValueError("Proposed branch name is required")

        def work() -> BranchRequest:
            document = load_document(self._session, document_id)
            require_access(principal, document)
            request = BranchRequest(
                document_id=document.document_id,
                proposed_name=proposed_name,
                reason=reason,
                requested_by_type=AuthorType.ai.value,
                requested_by_id=requested_by_id,
                status=BranchRequestStatus.pending.value,
            )
            self._session.add(request)
            self._session.flush()
            return request

        request = run_atomic(self._session, work)
        audit_log.log_transition(
            principal,
            "branch_request.create",
            "success",
            document_id=document_id,
            request_id=request.request_id,
        )
        return BranchRequestRecord.model_validate(request)

    def list_branch_requests(
        self,
        principal: Principal,
        document_id: UUID,
        status: BranchRequestStatus | None = None,
    ) -> list[BranchRequestRecord]:
        document = load_document(self._session, document_id)
        require_access(principal, document)
        stmt = select(BranchRequest).where(BranchRequest.document_id == document_id)
        if status is not None:
            stmt = stmt.where(BranchRequest.status == status.value)
        requests = self._session.execute(stmt.order_by(BranchRequest.created_at)).scalars()
        return [BranchRequestRecord.model_validate(r) for r in requests]

    def respond_to_branch_request(
        self,
        principal: Principal,
        request_id: UUID,
        approve: bool,
        final_name: str | None = None,
    ) -> BranchRequestRecord:
        """Approve or reject a pending request.

        Args:
            principal: Caller; must be able to edit the document
            request_id: Request to resolve
            approve: True creates the branch, False rejects
            final_name: Branch name to use instead of the proposed one

        Raises:
            NotFoundError: Request or document absent
            ForbiddenError: Principal cannot edit the document
            ConflictError: Request already resolved, or the branch name is taken
        """
        target = BranchRequestStatus.approved if approve else BranchRequestStatus.rejected

        def work() -> BranchRequest:
            request = self._session.get(BranchRequest, request_id)
            if request is None:
                raise NotFoundError("Branch request not found")
            document = load_document(self._session, request.document_id)
            require_edit(principal, document)

            result = self._session.execute(
                update(BranchRequest)
                .where(
                    BranchRequest.request_id == request_id,
                    BranchRequest.status == BranchRequestStatus.pending.value,
                )
                .values(status=target.value, responded_at=utcnow())
                .execution_options(synchronize_session="evaluate")
            )
            if result.rowcount == 0:
                raise ConflictError("Branch request has already been resolved")

            if approve:
                branch = DocumentBranch(
                    document_id=document.document_id,
                    name=(final_name or "").strip() or request.proposed_name,
                    created_by_type=AuthorType.ai.value,
                    created_by_id=request.requested_by_id,
                    is_default=False,
                )
                self._session.add(branch)
                self._session.flush()
                request.created_branch_id = branch.branch_id
            self._session.flush()
            return request

        request = run_atomic(self._session, work)
        audit_log.log_transition(
            principal,
            "branch_request.respond",
            "success",
            request_id=request_id,
            status=target.value,
        )
        return BranchRequestRecord.model_validate(request)
