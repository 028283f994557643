"""Auth endpoints - register, login, current user."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.auth import issue_credential
from backend.app.api.routing import PipelineRouter
from backend.app.config import get_settings
from backend.app.db.models import User
from backend.app.errors import AuthenticationError, AuthFailure, ConflictError, NotFoundError
from backend.app.models.auth import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from backend.app.pipeline.context import Identity, RequestContext
from backend.app.pipeline.contract import RouteContract
from backend.app.utils.passwords import check_password_hash, generate_password_hash

logger = logging.getLogger(__name__)

routes = PipelineRouter(prefix="/api/auth", tags=["auth"])
router = routes.router

REGISTER = RouteContract(name="auth.register", body=RegisterRequest, public=True)
LOGIN = RouteContract(name="auth.login", body=LoginRequest, public=True)
ME = RouteContract(name="auth.me")


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        last_organization_id=user.last_organization_id,
    )


async def _find_user(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


@routes.post("/register", contract=REGISTER, status_code=201, message="User registered")
async def register(ctx: RequestContext, session: AsyncSession) -> TokenResponse:
    """Create a user and issue a credential."""
    body = ctx.body_as(RegisterRequest)
    settings = get_settings()

    if await _find_user(session, body.email) is not None:
        raise ConflictError("Email already registered", reason="email_taken")

    user = User(
        email=body.email.lower(),
        name=body.name,
        password_hash=generate_password_hash(body.password, settings.password_hash_iterations),
    )
    session.add(user)
    await session.commit()

    logger.info("User registered", extra={"structured": {"user_id": str(user.id)}})

    token = await issue_credential(Identity(id=user.id, email=user.email), session, settings)
    return TokenResponse(user=_user_response(user), token=token)


@routes.post("/login", contract=LOGIN, message="Login successful")
async def login(ctx: RequestContext, session: AsyncSession) -> TokenResponse:
    """Check credentials and issue a new bearer credential."""
    body = ctx.body_as(LoginRequest)

    user = await _find_user(session, body.email)
    if user is None or not check_password_hash(user.password_hash, body.password):
        raise AuthenticationError(
            "Invalid email or password", reason=AuthFailure.invalid_credential
        )

    token = await issue_credential(Identity(id=user.id, email=user.email), session, get_settings())
    return TokenResponse(user=_user_response(user), token=token)


@routes.get("/me", contract=ME)
async def me(ctx: RequestContext, session: AsyncSession) -> UserResponse:
    """Current user."""
    user = await session.get(User, ctx.user_id)
    if user is None:
        raise NotFoundError("User not found", reason="user_not_found")
    return _user_response(user)
