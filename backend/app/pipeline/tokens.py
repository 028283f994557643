"""Bearer credential verification.

Two strategies sit behind the same ``TokenVerifier`` contract: self-contained
signed JWTs, and opaque session tokens looked up in a ``SessionStore``. Callers
only ever see ``verify_header`` returning an ``Identity`` or an
``AuthenticationError``.
"""

import hashlib
import logging
import re
import secrets
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import jwt

from backend.app.db.repositories import SessionRecord, SessionStore
from backend.app.errors import AuthenticationError, AuthFailure
from backend.app.pipeline.context import Identity
from backend.app.pipeline.result import Err, Ok, Result

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "
_OPAQUE_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]{32,}$")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _fail(reason: AuthFailure, message: str) -> Err:
    return Err(AuthenticationError(message, reason=reason))


class TokenVerifier(ABC):
    """Turns an ``Authorization`` header into a verified identity."""

    async def verify_header(self, authorization: str | None) -> Result[Identity]:
        """Extract the bearer credential and verify it.

        Args:
            authorization: Raw ``Authorization`` header value, if any

        Returns:
            ``Ok(Identity)`` or ``Err(AuthenticationError)``
        """
        if not authorization:
            return _fail(AuthFailure.missing_credential, "Authentication required")

        if not authorization.startswith(BEARER_PREFIX):
            return _fail(AuthFailure.malformed_credential, "Invalid authorization header format")

        credential = authorization[len(BEARER_PREFIX) :].strip()
        if not credential:
            return _fail(AuthFailure.missing_credential, "Authentication required")

        return await self.verify(credential)

    @abstractmethod
    async def verify(self, credential: str) -> Result[Identity]:
        """Verify a bare credential string."""


class JwtTokenVerifier(TokenVerifier):
    """Verifies self-contained signed access tokens. No store access."""

    def __init__(self, secret_key: str, algorithm: str = "HS256") -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm

    async def verify(self, credential: str) -> Result[Identity]:
        try:
            payload = jwt.decode(
                credential,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            return _fail(AuthFailure.expired_credential, "Token has expired")
        except jwt.DecodeError:
            # Covers both garbage input and a bad signature
            return self._decode_failure(credential)
        except jwt.MissingRequiredClaimError as e:
            return _fail(AuthFailure.malformed_credential, f"Token is missing claim: {e.claim}")
        except jwt.InvalidTokenError as e:
            logger.debug("Rejected token: %s", e)
            return _fail(AuthFailure.invalid_credential, "Invalid token")

        if payload.get("type", "access") != "access":
            return _fail(AuthFailure.invalid_credential, "Token is not an access token")

        try:
            user_id = uuid.UUID(str(payload["sub"]))
        except ValueError:
            return _fail(AuthFailure.malformed_credential, "Token subject is not a user id")

        email = payload.get("email")
        if not isinstance(email, str):
            return _fail(AuthFailure.malformed_credential, "Token is missing claim: email")

        return Ok(Identity(id=user_id, email=email))

    def _decode_failure(self, credential: str) -> Err:
        try:
            jwt.get_unverified_header(credential)
        except jwt.DecodeError:
            return _fail(AuthFailure.malformed_credential, "Malformed token")
        return _fail(AuthFailure.invalid_credential, "Invalid token signature")


class SessionTokenVerifier(TokenVerifier):
    """Verifies opaque session tokens against a session store."""

    def __init__(self, store: SessionStore, clock: Callable[[], datetime] = _utc_now) -> None:
        self._store = store
        self._clock = clock

    async def verify(self, credential: str) -> Result[Identity]:
        if not _OPAQUE_TOKEN_RE.match(credential):
            return _fail(AuthFailure.malformed_credential, "Malformed session token")

        record = await self._store.get_session(hash_token(credential))
        if record is None:
            return _fail(AuthFailure.invalid_credential, "Unknown session")

        if record.expires_at <= self._clock():
            return _fail(AuthFailure.expired_credential, "Session has expired")

        return Ok(Identity(id=record.user_id, email=record.email))


def hash_token(token: str) -> str:
    """Hash an opaque token for storage; raw tokens are never persisted."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def issue_access_token(
    identity: Identity,
    secret_key: str,
    *,
    algorithm: str = "HS256",
    expires_in: timedelta = timedelta(days=7),
    now: datetime | None = None,
) -> str:
    """Sign an access token for ``identity``."""
    issued_at = now or _utc_now()
    payload = {
        "sub": str(identity.id),
        "email": identity.email,
        "type": "access",
        "iat": issued_at,
        "exp": issued_at + expires_in,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def issue_session_token(
    identity: Identity,
    *,
    ttl: timedelta = timedelta(days=7),
    now: datetime | None = None,
) -> tuple[str, SessionRecord]:
    """Create a new opaque session token and the record to persist for it.

    Returns:
        Tuple of (raw token for the client, record keyed by the token hash)
    """
    token = secrets.token_urlsafe(32)
    record = SessionRecord(
        token_hash=hash_token(token),
        user_id=identity.id,
        email=identity.email,
        expires_at=(now or _utc_now()) + ttl,
    )
    return token, record
