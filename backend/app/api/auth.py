"""Auth dependencies for pipeline routes.

The credential verifier and membership store are request-scoped because both
may read from the request's database session. Tests override them through
``app.dependency_overrides``.
"""

from datetime import timedelta
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.config import Settings, get_settings
from backend.app.db.engine import get_session
from backend.app.db.repositories import MembershipStore
from backend.app.db.sql_repositories import SqlMembershipStore, SqlSessionStore
from backend.app.pipeline.context import Identity
from backend.app.pipeline.tokens import (
    JwtTokenVerifier,
    SessionTokenVerifier,
    TokenVerifier,
    issue_access_token,
    issue_session_token,
)


async def get_token_verifier(
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenVerifier:
    """Build the verifier for the configured token strategy."""
    if settings.token_strategy == "session":
        return SessionTokenVerifier(SqlSessionStore(session))
    return JwtTokenVerifier(settings.jwt_secret_key, settings.jwt_algorithm)


async def get_membership_store(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> MembershipStore:
    """Membership store bound to the request's session."""
    return SqlMembershipStore(session)


async def issue_credential(identity: Identity, session: AsyncSession, settings: Settings) -> str:
    """Issue a bearer credential for ``identity`` using the configured strategy.

    Args:
        identity: Authenticated user
        session: Database session (used by the session strategy)
        settings: Application settings

    Returns:
        Raw credential to hand back to the client
    """
    if settings.token_strategy == "session":
        token, record = issue_session_token(
            identity, ttl=timedelta(minutes=settings.session_ttl_minutes)
        )
        await SqlSessionStore(session).save_session(record)
        return token

    return issue_access_token(
        identity,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_in=timedelta(minutes=settings.jwt_access_token_expire_minutes),
    )
