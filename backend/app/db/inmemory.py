"""In-memory implementations of store interfaces."""

import uuid

from backend.app.db.repositories import SessionRecord
from backend.app.pipeline.context import Membership, OrgRole


class InMemoryMembershipStore:
    """In-memory implementation of MembershipStore."""

    def __init__(self) -> None:
        self._organizations: dict[uuid.UUID, str] = {}
        self._memberships: dict[tuple[uuid.UUID, uuid.UUID], Membership] = {}
        self.lookups = 0

    def add_organization(self, name: str, org_id: uuid.UUID | None = None) -> uuid.UUID:
        """Register an organization and return its ID."""
        org_id = org_id or uuid.uuid4()
        self._organizations[org_id] = name
        return org_id

    def add_member(self, org_id: uuid.UUID, user_id: uuid.UUID, role: OrgRole) -> Membership:
        """Add or replace the membership for (org, user)."""
        if org_id not in self._organizations:
            raise KeyError(f"Unknown organization {org_id}")
        membership = Membership(organization_id=org_id, user_id=user_id, role=role)
        self._memberships[(org_id, user_id)] = membership
        return membership

    async def get_membership(self, org_id: uuid.UUID, user_id: uuid.UUID) -> Membership | None:
        """Get the membership for (org, user)."""
        self.lookups += 1
        return self._memberships.get((org_id, user_id))

    async def organization_exists(self, org_id: uuid.UUID) -> bool:
        """Whether the organization exists."""
        return org_id in self._organizations


class InMemorySessionStore:
    """In-memory implementation of SessionStore."""

    def __init__(self) -> None:
        self._sessions: dict[str, SessionRecord] = {}

    async def get_session(self, token_hash: str) -> SessionRecord | None:
        """Get session by token hash."""
        return self._sessions.get(token_hash)

    async def save_session(self, record: SessionRecord) -> None:
        """Persist a session record."""
        self._sessions[record.token_hash] = record
