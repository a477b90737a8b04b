"""Minimal auth dependency.

Stub implementation that builds a Principal from a bearer token of the form
``<org_id>:<user_id>[:<org_role>]`` plus an optional team membership header.
Real token validation belongs to the external identity provider.
"""

import uuid
from types import MappingProxyType
from typing import Annotated

from fastapi import Header, HTTPException, status

from backend.docflow.db.context import ANONYMOUS, Principal

DEFAULT_ORG_ROLE = "member"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def parse_team_memberships(raw: str | None) -> dict[uuid.UUID, str]:
    """Parse ``<team_id>=<role>,...`` into a team -> role mapping.

    Raises:
        ValueError: If an entry is malformed
    """
    memberships: dict[uuid.UUID, str] = {}
    if not raw:
        return memberships
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        team_id_str, sep, role = entry.partition("=")
        if not sep or not role.strip():
            raise ValueError(f"Invalid team membership entry: {entry!r}")
        memberships[uuid.UUID(team_id_str.strip())] = role.strip()
    return memberships


async def get_current_principal(
    authorization: Annotated[str | None, Header()] = None,
    x_team_memberships: Annotated[str | None, Header()] = None,
) -> Principal:
    """Extract the caller's Principal from request headers.

    Args:
        authorization: Authorization header (e.g., "Bearer <org_id>:<user_id>:admin")
        x_team_memberships: Optional "<team_id>=<role>,..." header

    Returns:
        Principal; anonymous when no authorization header is sent

    Raises:
        HTTPException: If the header is present but malformed
    """
    if not authorization:
        return ANONYMOUS

    if not authorization.startswith("Bearer "):
        raise _unauthorized("Invalid authorization header format")

    token = authorization[7:]  # Strip "Bearer "

    parts = token.split(":")
    if len(parts) not in (2, 3):
        raise _unauthorized("Invalid token format (expected org_id:user_id[:org_role])")

    try:
        org_id = uuid.UUID(parts[0])
        user_id = uuid.UUID(parts[1])
    except ValueError as e:
        raise _unauthorized("Invalid token format (expected org_id:user_id[:org_role])") from e

    try:
        team_roles = parse_team_memberships(x_team_memberships)
    except ValueError as e:
        raise _unauthorized("Invalid X-Team-Memberships header") from e

    org_role = parts[2] if len(parts) == 3 and parts[2] else DEFAULT_ORG_ROLE

    return Principal(
        user_id=user_id,
        org_id=org_id,
        org_role=org_role,
        team_roles=MappingProxyType(team_roles),
    )
