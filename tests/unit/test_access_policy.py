"""Unit tests for read/write permission predicates."""

import uuid
from types import MappingProxyType

import pytest

from backend.docflow.access.policy import can_access, can_edit, require_access, require_edit
from backend.docflow.db.context import ANONYMOUS, Principal
from backend.docflow.errors import ForbiddenError
from backend.docflow.models.common import Visibility

ORG = uuid.uuid4()
TEAM = uuid.uuid4()
OWNER_ID = uuid.uuid4()


def principal(
    org_id: uuid.UUID | None = None, role: str | None = None, teams: dict | None = None
) -> Principal:
    return Principal(
        user_id=uuid.uuid4(),
        org_id=org_id,
        org_role=role,
        team_roles=MappingProxyType(teams or {}),
    )


class TestCanAccess:
    """Read permission across visibility tiers."""

    def test_public_is_readable_by_anyone(self) -> None:
        assert can_access(ANONYMOUS, Visibility.public, OWNER_ID)
        assert can_access(principal(), "public", OWNER_ID)

    def test_owner_reads_private(self) -> None:
        owner = Principal(user_id=OWNER_ID)
        assert can_access(owner, Visibility.private, OWNER_ID)

    def test_private_denied_to_others(self) -> None:
        assert not can_access(principal(org_id=ORG, role="owner"), Visibility.private, OWNER_ID)
        assert not can_access(ANONYMOUS, Visibility.private, OWNER_ID)

    def test_organization_requires_matching_context(self) -> None:
        assert can_access(principal(org_id=ORG), Visibility.organization, OWNER_ID, ORG)
        assert not can_access(
            principal(org_id=uuid.uuid4()), Visibility.organization, OWNER_ID, ORG
        )
        assert not can_access(principal(), Visibility.organization, OWNER_ID, ORG)

    def test_organization_without_scope_is_denied(self) -> None:
        assert not can_access(principal(org_id=ORG), Visibility.organization, OWNER_ID, None)

    def test_team_requires_membership(self) -> None:
        member = principal(teams={TEAM: "viewer"})
        assert can_access(member, Visibility.team, OWNER_ID, team_id=TEAM)
        assert not can_access(principal(teams={uuid.uuid4(): "lead"}), "team", OWNER_ID, None, TEAM)

    def test_anonymous_never_matches_owner(self) -> None:
        # A missing owner id must not match an anonymous principal's None
        assert not can_access(ANONYMOUS, Visibility.private, None)

    def test_unknown_visibility_is_denied_not_raised(self) -> None:
        assert not can_access(principal(org_id=ORG), "galactic", OWNER_ID, ORG)


class TestCanEdit:
    """Write permission across visibility tiers."""

    def test_owner_always_edits(self) -> None:
        owner = Principal(user_id=OWNER_ID)
        for visibility in Visibility:
            assert can_edit(owner, visibility, OWNER_ID)

    def test_public_does_not_grant_edit(self) -> None:
        assert not can_edit(principal(org_id=ORG, role="admin"), Visibility.public, OWNER_ID)

    @pytest.mark.parametrize("role", ["owner", "admin", "member"])
    def test_organization_editor_roles(self, role: str) -> None:
        assert can_edit(principal(org_id=ORG, role=role), Visibility.organization, OWNER_ID, ORG)

    def test_organization_viewer_cannot_edit(self) -> None:
        viewer = principal(org_id=ORG, role="viewer")
        assert can_access(viewer, Visibility.organization, OWNER_ID, ORG)
        assert not can_edit(viewer, Visibility.organization, OWNER_ID, ORG)

    def test_team_roles(self) -> None:
        assert can_edit(principal(teams={TEAM: "lead"}), Visibility.team, OWNER_ID, team_id=TEAM)
        assert can_edit(principal(teams={TEAM: "member"}), "team", OWNER_ID, team_id=TEAM)
        assert not can_edit(principal(teams={TEAM: "viewer"}), "team", OWNER_ID, team_id=TEAM)

    def test_anonymous_cannot_edit(self) -> None:
        for visibility in Visibility:
            assert not can_edit(ANONYMOUS, visibility, OWNER_ID, ORG, TEAM)


class _Item:
    def __init__(self, visibility: str, user_id: uuid.UUID) -> None:
        self.visibility = visibility
        self.user_id = user_id
        self.organization_id = None
        self.team_id = None


def test_require_helpers_raise_forbidden() -> None:
    item = _Item("private", OWNER_ID)

    with pytest.raises(ForbiddenError):
        require_access(principal(), item)
    with pytest.raises(ForbiddenError):
        require_edit(principal(), item)

    require_access(Principal(user_id=OWNER_ID), item)
    require_edit(Principal(user_id=OWNER_ID), item)
