"""Unit tests for the stub auth dependency."""

import uuid

import pytest
from fastapi import HTTPException

from backend.docflow.api.auth import get_current_principal, parse_team_memberships
from backend.docflow.db.context import ANONYMOUS


@pytest.mark.asyncio
async def test_no_header_is_anonymous() -> None:
    """Test that a missing auth header yields the anonymous principal."""
    principal = await get_current_principal(authorization=None)

    assert principal == ANONYMOUS
    assert not principal.is_authenticated


@pytest.mark.asyncio
async def test_valid_token_defaults_role_to_member() -> None:
    org_id = uuid.uuid4()
    user_id = uuid.uuid4()

    principal = await get_current_principal(authorization=f"Bearer {org_id}:{user_id}")

    assert principal.org_id == org_id
    assert principal.user_id == user_id
    assert principal.org_role == "member"
    assert dict(principal.team_roles) == {}


@pytest.mark.asyncio
async def test_token_with_role_and_teams() -> None:
    org_id, user_id = uuid.uuid4(), uuid.uuid4()
    team_a, team_b = uuid.uuid4(), uuid.uuid4()

    principal = await get_current_principal(
        authorization=f"Bearer {org_id}:{user_id}:viewer",
        x_team_memberships=f"{team_a}=lead, {team_b}=viewer",
    )

    assert principal.org_role == "viewer"
    assert principal.team_role(team_a) == "lead"
    assert principal.team_role(team_b) == "viewer"
    assert principal.is_team_member(team_a)
    assert not principal.is_team_member(uuid.uuid4())


@pytest.mark.asyncio
async def test_invalid_bearer_format() -> None:
    """Test invalid bearer format raises 401."""
    with pytest.raises(HTTPException) as exc_info:
        await get_current_principal(authorization="NotBearer token")

    assert exc_info.value.status_code == 401
    assert "Invalid authorization header format" in exc_info.value.detail


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "token",
    ["not-a-uuid:also-not", "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9", "a:b:c:d"],
)
async def test_malformed_token(token: str) -> None:
    with pytest.raises(HTTPException) as exc_info:
        await get_current_principal(authorization=f"Bearer {token}")

    assert exc_info.value.status_code == 401
    assert "expected org_id:user_id" in exc_info.value.detail


@pytest.mark.asyncio
async def test_malformed_team_header() -> None:
    with pytest.raises(HTTPException) as exc_info:
        await get_current_principal(
            authorization=f"Bearer {uuid.uuid4()}:{uuid.uuid4()}",
            x_team_memberships="not-a-team",
        )

    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Invalid X-Team-Memberships header"


def test_parse_team_memberships_skips_blank_entries() -> None:
    team = uuid.uuid4()

    assert parse_team_memberships(f"{team}=member,, ") == {team: "member"}
    assert parse_team_memberships(None) == {}


@pytest.mark.parametrize("raw", ["team=lead", "{team}=", "{team}"])
def test_parse_team_memberships_rejects_bad_entries(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_team_memberships(raw.format(team=uuid.uuid4()))
