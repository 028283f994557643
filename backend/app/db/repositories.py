"""Store protocol interfaces consumed by the request pipeline.

Both stores are read-only from the pipeline's point of view and must tolerate
concurrent reads from many in-flight requests.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from backend.app.pipeline.context import Membership


@dataclass(frozen=True)
class SessionRecord:
    """Opaque session token record, keyed by token hash."""

    token_hash: str
    user_id: UUID
    email: str
    expires_at: datetime


class SessionStore(Protocol):
    """Lookup of opaque session tokens."""

    async def get_session(self, token_hash: str) -> SessionRecord | None:
        """Get session by token hash.

        Args:
            token_hash: SHA-256 hex digest of the raw token

        Returns:
            Session record or None if unknown
        """
        ...

    async def save_session(self, record: SessionRecord) -> None:
        """Persist a newly issued session."""
        ...


class MembershipStore(Protocol):
    """Lookup of organization memberships."""

    async def get_membership(self, org_id: UUID, user_id: UUID) -> Membership | None:
        """Get the membership for (org, user).

        Args:
            org_id: Organization ID
            user_id: User ID

        Returns:
            Membership or None if the user is not a member
        """
        ...

    async def organization_exists(self, org_id: UUID) -> bool:
        """Whether an organization with this ID exists."""
        ...
