"""Unit tests for AI branch requests."""

import uuid

import pytest
from sqlalchemy.orm import Session

from backend.docflow.db.context import Principal
from backend.docflow.errors import ConflictError, ForbiddenError, NotFoundError
from backend.docflow.models.common import AuthorType, BranchRequestStatus, Visibility
from backend.docflow.versioning.requests import BranchRequestService
from backend.docflow.versioning.store import VersionStore


@pytest.fixture
def requests(session: Session) -> BranchRequestService:
    return BranchRequestService(session)


def test_request_is_pending_and_creates_nothing(
    requests: BranchRequestService, session: Session, owner: Principal, make_document
) -> None:
    doc = make_document()

    request = requests.request_branch(owner, doc.document_id, "rewrite", reason="Big change")

    assert request.status == BranchRequestStatus.pending
    assert request.requested_by_type == AuthorType.ai
    assert request.created_branch_id is None
    assert len(VersionStore(session).list_branches(owner, doc.document_id)) == 1


def test_approve_creates_branch(
    requests: BranchRequestService, session: Session, owner: Principal, make_document
) -> None:
    doc = make_document()
    assistant_id = uuid.uuid4()
    request = requests.request_branch(
        owner, doc.document_id, "experiment", requested_by_id=assistant_id
    )

    resolved = requests.respond_to_branch_request(owner, request.request_id, approve=True)

    assert resolved.status == BranchRequestStatus.approved
    assert resolved.responded_at is not None
    branch = VersionStore(session).get_branch(owner, resolved.created_branch_id)
    assert branch.name == "experiment"
    assert branch.created_by_type == AuthorType.ai
    assert branch.created_by_id == assistant_id


def test_approve_with_final_name(
    requests: BranchRequestService, session: Session, owner: Principal, make_document
) -> None:
    doc = make_document()
    request = requests.request_branch(owner, doc.document_id, "tmp")

    resolved = requests.respond_to_branch_request(
        owner, request.request_id, approve=True, final_name="feature/outline"
    )

    branch = VersionStore(session).get_branch(owner, resolved.created_branch_id)
    assert branch.name == "feature/outline"


def test_reject_creates_nothing(
    requests: BranchRequestService, session: Session, owner: Principal, make_document
) -> None:
    doc = make_document()
    request = requests.request_branch(owner, doc.document_id, "nope")

    resolved = requests.respond_to_branch_request(owner, request.request_id, approve=False)

    assert resolved.status == BranchRequestStatus.rejected
    assert resolved.created_branch_id is None
    assert len(VersionStore(session).list_branches(owner, doc.document_id)) == 1


def test_resolved_request_cannot_be_resolved_again(
    requests: BranchRequestService, owner: Principal, make_document
) -> None:
    doc = make_document()
    request = requests.request_branch(owner, doc.document_id, "once")
    requests.respond_to_branch_request(owner, request.request_id, approve=False)

    with pytest.raises(ConflictError):
        requests.respond_to_branch_request(owner, request.request_id, approve=True)


def test_name_collision_leaves_request_pending(
    requests: BranchRequestService, session: Session, owner: Principal, make_document
) -> None:
    doc = make_document()
    request = requests.request_branch(owner, doc.document_id, "main")

    with pytest.raises(ConflictError):
        requests.respond_to_branch_request(owner, request.request_id, approve=True)

    [still_pending] = requests.list_branch_requests(
        owner, doc.document_id, status=BranchRequestStatus.pending
    )
    assert still_pending.request_id == request.request_id


def test_reader_may_request_but_not_respond(
    requests: BranchRequestService, outsider: Principal, make_document
) -> None:
    doc = make_document(visibility=Visibility.public)
    request = requests.request_branch(outsider, doc.document_id, "suggested")

    with pytest.raises(ForbiddenError):
        requests.respond_to_branch_request(outsider, request.request_id, approve=True)


def test_list_filters_by_status(
    requests: BranchRequestService, owner: Principal, make_document
) -> None:
    doc = make_document()
    first = requests.request_branch(owner, doc.document_id, "a")
    second = requests.request_branch(owner, doc.document_id, "b")
    requests.respond_to_branch_request(owner, first.request_id, approve=False)

    all_requests = requests.list_branch_requests(owner, doc.document_id)
    pending = requests.list_branch_requests(
        owner, doc.document_id, status=BranchRequestStatus.pending
    )

    assert {r.request_id for r in all_requests} == {first.request_id, second.request_id}
    assert [r.request_id for r in pending] == [second.request_id]


def test_blank_name_rejected(
    requests: BranchRequestService, owner: Principal, make_document
) -> None:
    doc = make_document()

    with pytest.raises(ValueError):
        requests.request_branch(owner, doc.document_id, " ")


def test_unknown_request(requests: BranchRequestService, owner: Principal) -> None:
    with pytest.raises(NotFoundError):
        requests.respond_to_branch_request(owner, uuid.uuid4(), approve=True)
