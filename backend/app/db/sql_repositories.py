"""SQL implementations of store interfaces."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.models import Organization, OrganizationMember, User, UserSession
from backend.app.db.repositories import SessionRecord
from backend.app.pipeline.context import Membership, OrgRole


class SqlMembershipStore:
    """SQL implementation of MembershipStore."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_membership(self, org_id: uuid.UUID, user_id: uuid.UUID) -> Membership | None:
        """Get the membership for (org, user)."""
        result = await self._session.execute(
            select(OrganizationMember.role).where(
                OrganizationMember.organization_id == org_id,
                OrganizationMember.user_id == user_id,
            )
        )
        role = result.scalar_one_or_none()

        if role is None:
            return None

        return Membership(organization_id=org_id, user_id=user_id, role=OrgRole(role))

    async def organization_exists(self, org_id: uuid.UUID) -> bool:
        """Whether the organization exists."""
        result = await self._session.execute(
            select(Organization.id).where(Organization.id == org_id)
        )
        return result.scalar_one_or_none() is not None


class SqlSessionStore:
    """SQL implementation of SessionStore."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_session(self, token_hash: str) -> SessionRecord | None:
        """Get session by token hash."""
        result = await self._session.execute(
            select(UserSession.expires_at, User.id, User.email)
            .join(User, User.id == UserSession.user_id)
            .where(UserSession.token_hash == token_hash)
        )
        row = result.one_or_none()

        if row is None:
            return None

        expires_at, user_id, email = row
        # SQLite hands back naive datetimes
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        return SessionRecord(
            token_hash=token_hash,
            user_id=user_id,
            email=email,
            expires_at=expires_at,
        )

    async def delete_expired(self, user_id: uuid.UUID, now: datetime) -> int:
        """Delete the user's sessions that expired at or before ``now``."""
        result = await self._session.execute(
            delete(UserSession).where(
                UserSession.user_id == user_id,
                UserSession.expires_at <= now,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def save_session(self, record: SessionRecord) -> None:
        """Persist a session record, pruning the user's expired ones."""
        await self.delete_expired(record.user_id, datetime.now(timezone.utc))
        self._session.add(
            UserSession(
                token_hash=record.token_hash,
                user_id=record.user_id,
                expires_at=record.expires_at,
            )
        )
        await self._session.commit()
