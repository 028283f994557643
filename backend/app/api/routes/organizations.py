"""Organization and member endpoints."""

import logging
import uuid

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.routing import PipelineRouter
from backend.app.db.models import Account, Organization, OrganizationMember, User
from backend.app.db.queries import query_members, query_owners_for_update, query_user_organizations
from backend.app.errors import (
    AccessFailure,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from backend.app.models.common import MemberParams, OrgIdParams
from backend.app.models.organization import (
    AddMemberRequest,
    CreateOrganizationRequest,
    MemberInfo,
    OrganizationSummary,
    UpdateMemberRoleRequest,
    UpdateOrganizationRequest,
)
from backend.app.pipeline.context import OrgRole, RequestContext, roles_at_least
from backend.app.pipeline.contract import RouteContract

logger = logging.getLogger(__name__)

routes = PipelineRouter(prefix="/api/organizations", tags=["organizations"])
router = routes.router

ADMINS = roles_at_least(OrgRole.ADMIN)
OWNERS = frozenset({OrgRole.OWNER})

CREATE = RouteContract(name="organizations.create", body=CreateOrganizationRequest)
LIST = RouteContract(name="organizations.list")
GET = RouteContract(name="organizations.get", params=OrgIdParams, org_scoped=True)
UPDATE = RouteContract(
    name="organizations.update", params=OrgIdParams, body=UpdateOrganizationRequest, roles=ADMINS
)
DELETE = RouteContract(name="organizations.delete", params=OrgIdParams, roles=OWNERS)
SWITCH = RouteContract(name="organizations.switch", params=OrgIdParams, org_scoped=True)
LEAVE = RouteContract(name="organizations.leave", params=OrgIdParams, org_scoped=True)
LIST_MEMBERS = RouteContract(name="members.list", params=OrgIdParams, org_scoped=True)
ADD_MEMBER = RouteContract(
    name="members.add", params=OrgIdParams, body=AddMemberRequest, roles=ADMINS
)
UPDATE_MEMBER = RouteContract(
    name="members.update_role", params=MemberParams, body=UpdateMemberRoleRequest, roles=OWNERS
)
REMOVE_MEMBER = RouteContract(name="members.remove", params=MemberParams, roles=ADMINS)


async def _get_member(
    session: AsyncSession, org_id: uuid.UUID, user_id: uuid.UUID
) -> OrganizationMember:
    result = await session.execute(
        select(OrganizationMember).where(
            OrganizationMember.organization_id == org_id,
            OrganizationMember.user_id == user_id,
        )
    )
    member = result.scalar_one_or_none()
    if member is None:
        raise NotFoundError("Member not found", reason="member_not_found")
    return member


async def _ensure_other_owner(session: AsyncSession, member: OrganizationMember) -> None:
    """Refuse to leave an organization without an OWNER."""
    if member.role != OrgRole.OWNER.value:
        return
    result = await session.execute(query_owners_for_update(member.organization_id))
    if len(result.scalars().all()) <= 1:
        raise ValidationError(
            "Organization must keep at least one owner", reason="last_owner"
        )


async def _remove_member(session: AsyncSession, member: OrganizationMember) -> None:
    await _ensure_other_owner(session, member)
    await session.execute(
        update(User)
        .where(User.id == member.user_id, User.last_organization_id == member.organization_id)
        .values(last_organization_id=None)
    )
    await session.delete(member)
    await session.commit()


@routes.post("", contract=CREATE, status_code=201, message="Organization created")
async def create_organization(ctx: RequestContext, session: AsyncSession) -> OrganizationSummary:
    """Create an organization; the caller becomes its OWNER."""
    body = ctx.body_as(CreateOrganizationRequest)

    org = Organization(name=body.name)
    session.add(org)
    await session.flush()

    session.add(OrganizationMember(organization_id=org.id, user_id=ctx.user_id, role=OrgRole.OWNER.value))
    await session.execute(
        update(User).where(User.id == ctx.user_id).values(last_organization_id=org.id)
    )
    await session.commit()

    logger.info(
        "Organization created",
        extra={"structured": {"org_id": str(org.id), "user_id": str(ctx.user_id)}},
    )
    return OrganizationSummary(id=org.id, name=org.name, role=OrgRole.OWNER)


@routes.get("", contract=LIST)
async def list_organizations(ctx: RequestContext, session: AsyncSession) -> list[OrganizationSummary]:
    """Organizations the caller belongs to, oldest membership first."""
    result = await session.execute(query_user_organizations(ctx.user_id))
    return [OrganizationSummary(id=org.id, name=org.name, role=OrgRole(role)) for org, role in result.all()]


@routes.get("/{org_id}", contract=GET)
async def get_organization(ctx: RequestContext, session: AsyncSession) -> OrganizationSummary:
    org = await session.get(Organization, ctx.org_id)
    if org is None:
        raise NotFoundError("Organization not found", reason="organization_not_found")
    return OrganizationSummary(id=org.id, name=org.name, role=ctx.role)


@routes.patch("/{org_id}", contract=UPDATE, message="Organization updated")
async def update_organization(ctx: RequestContext, session: AsyncSession) -> OrganizationSummary:
    body = ctx.body_as(UpdateOrganizationRequest)

    org = await session.get(Organization, ctx.org_id)
    if org is None:
        raise NotFoundError("Organization not found", reason="organization_not_found")
    org.name = body.name
    await session.commit()

    return OrganizationSummary(id=org.id, name=org.name, role=ctx.role)


@routes.delete("/{org_id}", contract=DELETE, message="Organization deleted")
async def delete_organization(ctx: RequestContext, session: AsyncSession) -> None:
    """Delete an organization with its accounts and memberships."""
    org_id = ctx.org_id
    await session.execute(
        update(User).where(User.last_organization_id == org_id).values(last_organization_id=None)
    )
    await session.execute(delete(Account).where(Account.organization_id == org_id))
    await session.execute(delete(OrganizationMember).where(OrganizationMember.organization_id == org_id))
    await session.execute(delete(Organization).where(Organization.id == org_id))
    await session.commit()

    logger.info(
        "Organization deleted",
        extra={"structured": {"org_id": str(org_id), "user_id": str(ctx.user_id)}},
    )


@routes.post("/{org_id}/switch", contract=SWITCH, message="Switched organization")
async def switch_organization(ctx: RequestContext, session: AsyncSession) -> OrganizationSummary:
    """Make this the caller's current organization."""
    await session.execute(
        update(User).where(User.id == ctx.user_id).values(last_organization_id=ctx.org_id)
    )
    await session.commit()

    org = await session.get(Organization, ctx.org_id)
    if org is None:
        raise NotFoundError("Organization not found", reason="organization_not_found")
    return OrganizationSummary(id=org.id, name=org.name, role=ctx.role)


@routes.delete("/{org_id}/leave", contract=LEAVE, message="Left organization")
async def leave_organization(ctx: RequestContext, session: AsyncSession) -> None:
    member = await _get_member(session, ctx.org_id, ctx.user_id)
    await _remove_member(session, member)


@routes.get("/{org_id}/members", contract=LIST_MEMBERS)
async def list_members(ctx: RequestContext, session: AsyncSession) -> list[MemberInfo]:
    result = await session.execute(
        query_members(ctx.org_id)
        .add_columns(User.email, User.name)
        .join(User, User.id == OrganizationMember.user_id)
        .order_by(OrganizationMember.created_at.asc())
    )
    return [
        MemberInfo(
            user_id=member.user_id,
            email=email,
            name=name,
            role=OrgRole(member.role),
            joined_at=member.created_at,
        )
        for member, email, name in result.all()
    ]


@routes.post("/{org_id}/members", contract=ADD_MEMBER, status_code=201, message="Member added")
async def add_member(ctx: RequestContext, session: AsyncSession) -> MemberInfo:
    """Add an existing user to the organization by email."""
    body = ctx.body_as(AddMemberRequest)

    result = await session.execute(select(User).where(User.email == body.email.lower()))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found", reason="user_not_found")

    if body.role == OrgRole.OWNER and ctx.role != OrgRole.OWNER:
        raise AuthorizationError("Insufficient permissions", reason=AccessFailure.insufficient_role)

    existing = await session.execute(
        select(OrganizationMember.id).where(
            OrganizationMember.organization_id == ctx.org_id,
            OrganizationMember.user_id == user.id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("User is already a member of this organization", reason="already_member")

    member = OrganizationMember(organization_id=ctx.org_id, user_id=user.id, role=body.role.value)
    session.add(member)
    await session.commit()

    return MemberInfo(
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=body.role,
        joined_at=member.created_at,
    )


@routes.patch("/{org_id}/members/{user_id}", contract=UPDATE_MEMBER, message="Member role updated")
async def update_member_role(ctx: RequestContext, session: AsyncSession) -> MemberInfo:
    params = ctx.params_as(MemberParams)
    body = ctx.body_as(UpdateMemberRoleRequest)

    member = await _get_member(session, ctx.org_id, params.user_id)
    if body.role != OrgRole.OWNER:
        await _ensure_other_owner(session, member)
    member.role = body.role.value
    await session.commit()

    user = await session.get(User, member.user_id)
    if user is None:
        raise NotFoundError("User not found", reason="user_not_found")
    return MemberInfo(
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=body.role,
        joined_at=member.created_at,
    )


@routes.delete("/{org_id}/members/{user_id}", contract=REMOVE_MEMBER, message="Member removed")
async def remove_member(ctx: RequestContext, session: AsyncSession) -> None:
    params = ctx.params_as(MemberParams)

    member = await _get_member(session, ctx.org_id, params.user_id)
    if member.role == OrgRole.OWNER.value and ctx.role != OrgRole.OWNER:
        raise AuthorizationError("Insufficient permissions", reason=AccessFailure.insufficient_role)
    await _remove_member(session, member)
