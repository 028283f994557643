"""Tenancy-safe query helpers."""

import uuid

from sqlalchemy import Select, select

from backend.app.db.models import Account, Organization, OrganizationMember
from backend.app.pipeline.context import OrgRole


def query_accounts(org_id: uuid.UUID, *, include_inactive: bool = False) -> Select[tuple[Account]]:
    """Select accounts with organization scoping enforced.

    Args:
        org_id: Organization ID from the resolved membership
        include_inactive: Also return deactivated accounts

    Returns:
        Select filtered by organization_id
    """
    stmt = select(Account).where(Account.organization_id == org_id)
    if not include_inactive:
        stmt = stmt.where(Account.is_active.is_(True))
    return stmt


def query_account(org_id: uuid.UUID, account_id: uuid.UUID) -> Select[tuple[Account]]:
    """Select one account, only if it belongs to the organization."""
    return select(Account).where(Account.organization_id == org_id, Account.id == account_id)


def query_members(org_id: uuid.UUID) -> Select[tuple[OrganizationMember]]:
    """Select memberships of one organization."""
    return select(OrganizationMember).where(OrganizationMember.organization_id == org_id)


def query_user_organizations(user_id: uuid.UUID) -> Select[tuple[Organization, str]]:
    """Select organizations a user belongs to, with the user's role."""
    return (
        select(Organization, OrganizationMember.role)
        .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
        .where(OrganizationMember.user_id == user_id)
        .order_by(OrganizationMember.created_at.asc())
    )


def query_owners_for_update(org_id: uuid.UUID) -> Select[tuple[uuid.UUID]]:
    """Select and lock the OWNER memberships of one organization.

    PostgreSQL refuses ``FOR UPDATE`` on an aggregate, so callers count
    the returned rows.
    """
    return (
        select(OrganizationMember.id)
        .where(
            OrganizationMember.organization_id == org_id,
            OrganizationMember.role == OrgRole.OWNER.value,
        )
        .with_for_update()
    )
