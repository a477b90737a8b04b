"""Read/write permission predicates for documents and chats.

``can_access`` and ``can_edit`` are pure and total: they never raise and never
touch storage. The ``require_*`` helpers wrap them for the service layer and
raise ``ForbiddenError`` on denial.
"""

from typing import Protocol
from uuid import UUID

from backend.docflow.db.context import Principal
from backend.docflow.errors import ForbiddenError
from backend.docflow.models.common import Visibility

EDITOR_ORG_ROLES = frozenset({"owner", "admin", "member"})
EDITOR_TEAM_ROLES = frozenset({"lead", "member"})


class OwnedContent(Protocol):
    """Anything carrying ownership and visibility attributes."""

    visibility: str
    user_id: UUID
    organization_id: UUID | None
    team_id: UUID | None


def _visibility(value: object) -> Visibility | None:
    try:
        return Visibility(value)
    except ValueError:
        return None


def is_owner(principal: Principal, owner_id: UUID | None) -> bool:
    """True if the principal is authenticated and owns the item."""
    return principal.user_id is not None and principal.user_id == owner_id


def can_access(
    principal: Principal,
    visibility: Visibility | str,
    owner_id: UUID | None,
    organization_id: UUID | None = None,
    team_id: UUID | None = None,
) -> bool:
    """Decide read permission.

    Args:
        principal: Caller identity (may be anonymous)
        visibility: Visibility tier of the item
        owner_id: Owner user id
        organization_id: Organization scope of the item, if any
        team_id: Team scope of the item, if any

    Returns:
        True if the principal may read the item
    """
    tier = _visibility(visibility)
    if tier is Visibility.public:
        return True
    if is_owner(principal, owner_id):
        return True
    if tier is Visibility.organization:
        return organization_id is not None and principal.org_id == organization_id
    if tier is Visibility.team:
        return principal.is_team_member(team_id)
    return False


def can_edit(
    principal: Principal,
    visibility: Visibility | str,
    owner_id: UUID | None,
    organization_id: UUID | None = None,
    team_id: UUID | None = None,
) -> bool:
    """Decide write permission.

    Owners always edit. In organization scope the caller needs a matching
    organization context and an editing role; in team scope, an editing role
    in that team. Public visibility grants reading only.
    """
    if is_owner(principal, owner_id):
        return True
    tier = _visibility(visibility)
    if tier is Visibility.organization:
        return (
            organization_id is not None
            and principal.org_id == organization_id
            and principal.org_role in EDITOR_ORG_ROLES
        )
    if tier is Visibility.team:
        return principal.team_role(team_id) in EDITOR_TEAM_ROLES
    return False


def can_access_item(principal: Principal, item: OwnedContent) -> bool:
    return can_access(principal, item.visibility, item.user_id, item.organization_id, item.team_id)


def can_edit_item(principal: Principal, item: OwnedContent) -> bool:
    return can_edit(principal, item.visibility, item.user_id, item.organization_id, item.team_id)


def require_access(principal: Principal, item: OwnedContent) -> None:
    """Raise ForbiddenError unless the principal may read ``item``."""
    if not can_access_item(principal, item):
        raise ForbiddenError("You cannot access this content")


def require_edit(principal: Principal, item: OwnedContent) -> None:
    """Raise ForbiddenError unless the principal may modify ``item``."""
    if not can_edit_item(principal, item):
        raise ForbiddenError("You cannot modify this content")


def require_owner(principal: Principal, item: OwnedContent, what: str = "content") -> None:
    """Raise ForbiddenError unless the principal owns ``item``."""
    if not is_owner(principal, item.user_id):
        raise ForbiddenError(f"You do not own this {what}")
