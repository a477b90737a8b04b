"""Unit tests for branches and version snapshots."""

import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.docflow.db.context import ANONYMOUS, Principal
from backend.docflow.db.models import Document, DocumentVersion
from backend.docflow.errors import ConflictError, ForbiddenError, NotFoundError
from backend.docflow.models.common import AuthorType, Visibility
from backend.docflow.versioning.store import VersionStore


@pytest.fixture
def store(session: Session) -> VersionStore:
    return VersionStore(session)


def default_branch_id(store: VersionStore, principal: Principal, document_id: uuid.UUID):
    branches = store.list_branches(principal, document_id)
    return next(b.branch_id for b in branches if b.is_default)


def test_new_document_has_default_branch_with_initial_version(
    store: VersionStore, owner: Principal, make_document
) -> None:
    doc = make_document(content="hello")

    branches = store.list_branches(owner, doc.document_id)
    assert len(branches) == 1
    assert branches[0].name == "main"
    assert branches[0].is_default

    versions = store.list_versions(owner, branches[0].branch_id)
    assert [v.version_number for v in versions] == [1]
    assert versions[0].content == "hello"
    assert versions[0].commit_message == "Initial version"
    assert versions[0].author_id == owner.user_id


def test_versions_are_numbered_contiguously(
    store: VersionStore, owner: Principal, make_document
) -> None:
    doc = make_document()
    branch_id = default_branch_id(store, owner, doc.document_id)

    refs = [store.create_version(owner, branch_id, f"content {i}", f"v{i}") for i in range(3)]

    assert [r.version_number for r in refs] == [2, 3, 4]
    versions = store.list_versions(owner, branch_id)
    assert [v.version_number for v in versions] == [1, 2, 3, 4]
    # Each version points at its predecessor on the branch
    assert versions[0].parent_version_id is None
    for previous, current in zip(versions, versions[1:], strict=False):
        assert current.parent_version_id == previous.version_id


def test_create_version_does_not_touch_live_content(
    store: VersionStore, session: Session, owner: Principal, make_document
) -> None:
    doc = make_document(content="live")
    branch_id = default_branch_id(store, owner, doc.document_id)

    store.create_version(owner, branch_id, "snapshot only", "snap")

    assert session.get(Document, doc.document_id).content == "live"


def test_create_version_unknown_branch(store: VersionStore, owner: Principal) -> None:
    with pytest.raises(NotFoundError):
        store.create_version(owner, uuid.uuid4(), "x", "msg")


def test_create_version_requires_edit(
    store: VersionStore, owner: Principal, outsider: Principal, make_document
) -> None:
    doc = make_document(visibility=Visibility.public)
    branch_id = default_branch_id(store, owner, doc.document_id)

    # Public grants read, not write
    assert store.list_versions(outsider, branch_id)
    with pytest.raises(ForbiddenError):
        store.create_version(outsider, branch_id, "hijack", "msg")
    with pytest.raises(ForbiddenError):
        store.create_version(ANONYMOUS, branch_id, "hijack", "msg")


def test_private_history_is_hidden(
    store: VersionStore, owner: Principal, outsider: Principal, make_document
) -> None:
    doc = make_document()
    branch_id = default_branch_id(store, owner, doc.document_id)

    with pytest.raises(ForbiddenError):
        store.list_versions(outsider, branch_id)
    with pytest.raises(ForbiddenError):
        store.get_branch(outsider, branch_id)


def test_ai_authored_version_keeps_author(
    store: VersionStore, owner: Principal, make_document
) -> None:
    doc = make_document()
    branch_id = default_branch_id(store, owner, doc.document_id)
    assistant_id = uuid.uuid4()

    ref = store.create_version(
        owner, branch_id, "ai text", "AI edit", author_type=AuthorType.ai, author_id=assistant_id
    )

    version = store.get_version(owner, ref.version_id)
    assert version.author_type == AuthorType.ai
    assert version.author_id == assistant_id


def test_version_number_conflict_is_retried(
    store: VersionStore, session: Session, owner: Principal, make_document, monkeypatch
) -> None:
    """A uniqueness collision on the version number re-runs the whole unit."""
    doc = make_document()
    branch_id = default_branch_id(store, owner, doc.document_id)

    original_append = VersionStore.append_version
    calls = {"count": 0}

    def flaky_append(self, branch, **kwargs):
        calls["count"] += 1
        if calls["count"] == 1:
            raise IntegrityError(
                "INSERT", {}, Exception("UNIQUE constraint failed: uq_version_branch_number")
            )
        return original_append(self, branch, **kwargs)

    monkeypatch.setattr(VersionStore, "append_version", flaky_append)

    ref = store.create_version(owner, branch_id, "after retry", "retry")

    assert calls["count"] == 2
    assert ref.version_number == 2


def test_version_number_conflict_exhausts_retries(
    store: VersionStore, owner: Principal, make_document, monkeypatch
) -> None:
    doc = make_document()
    branch_id = default_branch_id(store, owner, doc.document_id)

    def always_conflicts(self, branch, **kwargs):
        raise IntegrityError(
            "INSERT", {}, Exception("UNIQUE constraint failed: uq_version_branch_number")
        )

    monkeypatch.setattr(VersionStore, "append_version", always_conflicts)

    with pytest.raises(ConflictError):
        store.create_version(owner, branch_id, "never", "msg")


def test_unique_constraint_guards_version_numbers(
    session: Session, store: VersionStore, owner: Principal, make_document
) -> None:
    doc = make_document()
    branch_id = default_branch_id(store, owner, doc.document_id)

    session.add(
        DocumentVersion(
            branch_id=branch_id,
            version_number=1,
            content="duplicate",
            author_type="user",
        )
    )
    with pytest.raises(IntegrityError):
        session.flush()
    session.rollback()


class TestBranches:
    """Branch creation and listing."""

    def test_create_branch(self, store: VersionStore, owner: Principal, make_document) -> None:
        doc = make_document()
        main_id = default_branch_id(store, owner, doc.document_id)

        branch = store.create_branch(owner, doc.document_id, "experiment", parent_branch_id=main_id)

        assert branch.name == "experiment"
        assert branch.parent_branch_id == main_id
        assert not branch.is_default
        assert store.list_versions(owner, branch.branch_id) == []
        names = [b.name for b in store.list_branches(owner, doc.document_id)]
        assert names == ["main", "experiment"]

    def test_duplicate_branch_name_conflicts(
        self, store: VersionStore, owner: Principal, make_document
    ) -> None:
        doc = make_document()
        store.create_branch(owner, doc.document_id, "draft")

        with pytest.raises(ConflictError):
            store.create_branch(owner, doc.document_id, "draft")

    def test_parent_branch_must_belong_to_document(
        self, store: VersionStore, owner: Principal, make_document
    ) -> None:
        doc = make_document()
        other = make_document(title="Other")
        foreign_branch = default_branch_id(store, owner, other.document_id)

        with pytest.raises(NotFoundError):
            store.create_branch(owner, doc.document_id, "x", parent_branch_id=foreign_branch)

    def test_branch_versions_are_independent(
        self, store: VersionStore, owner: Principal, make_document
    ) -> None:
        doc = make_document()
        branch = store.create_branch(owner, doc.document_id, "side")

        ref = store.create_version(owner, branch.branch_id, "side content", "first on side")

        assert ref.version_number == 1

    def test_create_branch_requires_edit(
        self, store: VersionStore, outsider: Principal, make_document
    ) -> None:
        doc = make_document(visibility=Visibility.public)

        with pytest.raises(ForbiddenError):
            store.create_branch(outsider, doc.document_id, "mine")

    def test_blank_branch_name_rejected(
        self, store: VersionStore, owner: Principal, make_document
    ) -> None:
        doc = make_document()

        with pytest.raises(ValueError):
            store.create_branch(owner, doc.document_id, "   ")


def test_compare_versions(store: VersionStore, owner: Principal, make_document) -> None:
    doc = make_document(content="a\nb")
    branch_id = default_branch_id(store, owner, doc.document_id)
    first = store.list_versions(owner, branch_id)[0]
    second = store.create_version(owner, branch_id, "a\nB\nc", "edit")

    diff = store.compare_versions(owner, first.version_id, second.version_id)

    assert [entry.type for entry in diff] == ["modified", "added"]


def test_compare_versions_across_documents_rejected(
    store: VersionStore, owner: Principal, make_document
) -> None:
    one = make_document()
    two = make_document(title="Two")
    v1 = store.list_versions(owner, default_branch_id(store, owner, one.document_id))[0]
    v2 = store.list_versions(owner, default_branch_id(store, owner, two.document_id))[0]

    with pytest.raises(ValueError):
        store.compare_versions(owner, v1.version_id, v2.version_id)


def test_get_version_unknown(store: VersionStore, owner: Principal) -> None:
    with pytest.raises(NotFoundError):
        store.get_version(owner, uuid.uuid4())


def test_versions_survive_only_with_document(
    session: Session, store: VersionStore, owner: Principal, make_document
) -> None:
    doc = make_document()
    branch_id = default_branch_id(store, owner, doc.document_id)
    store.create_version(owner, branch_id, "two", "2")

    session.delete(session.get(Document, doc.document_id))
    session.commit()

    remaining = session.execute(
        select(DocumentVersion).where(DocumentVersion.branch_id == branch_id)
    ).scalars().all()
    assert remaining == []
