"""Account endpoints - org-scoped CRUD."""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.routing import PipelineRouter
from backend.app.db.models import Account
from backend.app.db.queries import query_account, query_accounts
from backend.app.errors import NotFoundError
from backend.app.models.account import (
    AccountListQuery,
    AccountResponse,
    CreateAccountRequest,
    UpdateAccountRequest,
)
from backend.app.models.common import AccountIdParams, OrgIdParams
from backend.app.pipeline.context import OrgRole, RequestContext, roles_at_least
from backend.app.pipeline.contract import RouteContract

logger = logging.getLogger(__name__)

routes = PipelineRouter(prefix="/api/organizations/{org_id}/accounts", tags=["accounts"])
router = routes.router

ADMINS = roles_at_least(OrgRole.ADMIN)

CREATE = RouteContract(
    name="accounts.create", params=OrgIdParams, body=CreateAccountRequest, roles=ADMINS
)
LIST = RouteContract(
    name="accounts.list", params=OrgIdParams, query=AccountListQuery, org_scoped=True
)
GET = RouteContract(
    name="accounts.get", params=AccountIdParams, org_scoped=True, reveal_missing_org=True
)
UPDATE = RouteContract(
    name="accounts.update", params=AccountIdParams, body=UpdateAccountRequest, roles=ADMINS
)
DELETE = RouteContract(name="accounts.delete", params=AccountIdParams, roles=ADMINS)


async def _load_account(session: AsyncSession, org_id: uuid.UUID, account_id: uuid.UUID) -> Account:
    result = await session.execute(query_account(org_id, account_id))
    account = result.scalar_one_or_none()
    if account is None:
        raise NotFoundError("Account not found", reason="account_not_found")
    return account


@routes.post("", contract=CREATE, status_code=201, message="Account created")
async def create_account(ctx: RequestContext, session: AsyncSession) -> AccountResponse:
    """Create an account in the caller's organization."""
    body = ctx.body_as(CreateAccountRequest)

    account = Account(
        organization_id=ctx.org_id,
        name=body.name,
        description=body.description,
        institution=body.institution,
        account_type=body.account_type.value,
        balance=body.balance,
        currency=body.currency.upper(),
    )
    session.add(account)
    await session.commit()

    logger.info(
        "Account created",
        extra={"structured": {"org_id": str(ctx.org_id), "account_id": str(account.id)}},
    )
    return AccountResponse.model_validate(account)


@routes.get("", contract=LIST)
async def list_accounts(ctx: RequestContext, session: AsyncSession) -> list[AccountResponse]:
    """List accounts, active only unless ``include_inactive`` is set."""
    query = ctx.query_as(AccountListQuery)

    stmt = (
        query_accounts(ctx.org_id, include_inactive=query.include_inactive)
        .order_by(Account.created_at.asc(), Account.name.asc())
        .limit(query.limit)
        .offset(query.offset)
    )
    result = await session.execute(stmt)
    return [AccountResponse.model_validate(account) for account in result.scalars().all()]


@routes.get("/{account_id}", contract=GET)
async def get_account(ctx: RequestContext, session: AsyncSession) -> AccountResponse:
    params = ctx.params_as(AccountIdParams)
    return AccountResponse.model_validate(await _load_account(session, ctx.org_id, params.account_id))


@routes.patch("/{account_id}", contract=UPDATE, message="Account updated")
async def update_account(ctx: RequestContext, session: AsyncSession) -> AccountResponse:
    """Apply only the fields the client sent; explicit null clears nullable fields."""
    params = ctx.params_as(AccountIdParams)
    body = ctx.body_as(UpdateAccountRequest)

    account = await _load_account(session, ctx.org_id, params.account_id)
    changes = body.model_dump(exclude_unset=True)
    if "account_type" in changes:
        changes["account_type"] = changes["account_type"].value
    if "currency" in changes:
        changes["currency"] = changes["currency"].upper()
    for field, value in changes.items():
        setattr(account, field, value)
    await session.commit()

    return AccountResponse.model_validate(account)


@routes.delete("/{account_id}", contract=DELETE, message="Account deleted")
async def delete_account(ctx: RequestContext, session: AsyncSession) -> None:
    params = ctx.params_as(AccountIdParams)

    account = await _load_account(session, ctx.org_id, params.account_id)
    await session.delete(account)
    await session.commit()

    logger.info(
        "Account deleted",
        extra={"structured": {"org_id": str(ctx.org_id), "account_id": str(account.id)}},
    )
