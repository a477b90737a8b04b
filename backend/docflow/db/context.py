"""Principal passed explicitly into every core operation."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from uuid import UUID


@dataclass(frozen=True)
class Principal:
    """Identity and membership of the caller.

    Built once at the request boundary from the external auth collaborator and
    threaded through the core. ``user_id`` is None for unauthenticated callers.
    ``org_id`` is the caller's current organization context; ``team_roles``
    maps team id to the caller's role in that team.
    """

    user_id: UUID | None = None
    org_id: UUID | None = None
    org_role: str | None = None
    team_roles: Mapping[UUID, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def is_team_member(self, team_id: UUID | None) -> bool:
        return team_id is not None and team_id in self.team_roles

    def team_role(self, team_id: UUID | None) -> str | None:
        if team_id is None:
            return None
        return self.team_roles.get(team_id)


ANONYMOUS = Principal()
