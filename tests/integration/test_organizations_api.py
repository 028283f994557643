"""Integration tests for /api/organizations and member management."""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.db.models import Account, OrganizationMember, User
from backend.app.pipeline.context import OrgRole
from tests.conftest import Seeder


@pytest.mark.asyncio
async def test_create_organization_makes_caller_owner(
    client: AsyncClient, seed: Seeder, db_session_factory: async_sessionmaker[AsyncSession]
) -> None:
    user = await seed.user()

    response = await client.post("/api/organizations", json={"name": "Household"}, headers=seed.auth(user))

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["name"] == "Household"
    assert data["role"] == "OWNER"

    async with db_session_factory() as session:
        refreshed = await session.get(User, user.id)
        assert refreshed is not None
        assert str(refreshed.last_organization_id) == data["id"]


@pytest.mark.asyncio
async def test_create_organization_requires_auth(client: AsyncClient) -> None:
    response = await client.post("/api/organizations", json={"name": "Household"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_organization_validates_name(client: AsyncClient, seed: Seeder) -> None:
    user = await seed.user()

    response = await client.post(
        "/api/organizations", json={"name": "x" * 101}, headers=seed.auth(user)
    )

    assert response.status_code == 400
    assert response.json()["field_errors"][0]["path"] == "body.name"


@pytest.mark.asyncio
async def test_list_organizations_only_shows_memberships(client: AsyncClient, seed: Seeder) -> None:
    user = await seed.user()
    mine = await seed.organization("Mine")
    await seed.organization("Not mine")
    await seed.member(mine, user, OrgRole.MEMBER)

    response = await client.get("/api/organizations", headers=seed.auth(user))

    assert response.status_code == 200
    assert response.json()["data"] == [{"id": str(mine.id), "name": "Mine", "role": "MEMBER"}]


@pytest.mark.asyncio
async def test_get_organization_for_member(client: AsyncClient, seed: Seeder) -> None:
    org = await seed.organization("Acme")
    member = await seed.user()
    await seed.member(org, member, OrgRole.MEMBER)

    response = await client.get(f"/api/organizations/{org.id}", headers=seed.auth(member))

    assert response.status_code == 200
    assert response.json()["data"]["role"] == "MEMBER"


@pytest.mark.asyncio
async def test_unknown_org_is_hidden(client: AsyncClient, seed: Seeder) -> None:
    user = await seed.user()

    response = await client.get(f"/api/organizations/{uuid.uuid4()}", headers=seed.auth(user))

    assert response.status_code == 403
    assert response.json()["reason"] == "not_a_member"


@pytest.mark.asyncio
async def test_update_organization_requires_admin(client: AsyncClient, seed: Seeder) -> None:
    org = await seed.organization("Acme")
    admin, member = await seed.user(), await seed.user()
    await seed.member(org, admin, OrgRole.ADMIN)
    await seed.member(org, member, OrgRole.MEMBER)

    denied = await client.patch(
        f"/api/organizations/{org.id}", json={"name": "Renamed"}, headers=seed.auth(member)
    )
    allowed = await client.patch(
        f"/api/organizations/{org.id}", json={"name": "Renamed"}, headers=seed.auth(admin)
    )

    assert denied.status_code == 403
    assert allowed.status_code == 200
    assert allowed.json()["data"]["name"] == "Renamed"


@pytest.mark.asyncio
async def test_delete_organization_is_owner_only(
    client: AsyncClient, seed: Seeder, db_session_factory: async_sessionmaker[AsyncSession]
) -> None:
    org = await seed.organization("Acme")
    owner, admin = await seed.user(), await seed.user()
    await seed.member(org, owner, OrgRole.OWNER)
    await seed.member(org, admin, OrgRole.ADMIN)
    await seed.account(org)

    denied = await client.delete(f"/api/organizations/{org.id}", headers=seed.auth(admin))
    deleted = await client.delete(f"/api/organizations/{org.id}", headers=seed.auth(owner))
    after = await client.get(f"/api/organizations/{org.id}", headers=seed.auth(owner))

    assert denied.status_code == 403
    assert deleted.status_code == 200
    assert after.status_code == 403

    async with db_session_factory() as session:
        accounts = await session.execute(select(Account).where(Account.organization_id == org.id))
        members = await session.execute(
            select(OrganizationMember).where(OrganizationMember.organization_id == org.id)
        )
        assert accounts.scalars().all() == []
        assert members.scalars().all() == []


@pytest.mark.asyncio
async def test_switch_organization(
    client: AsyncClient, seed: Seeder, db_session_factory: async_sessionmaker[AsyncSession]
) -> None:
    org = await seed.organization("Acme")
    member = await seed.user()
    await seed.member(org, member, OrgRole.MEMBER)

    response = await client.post(f"/api/organizations/{org.id}/switch", headers=seed.auth(member))

    assert response.status_code == 200
    async with db_session_factory() as session:
        refreshed = await session.get(User, member.id)
        assert refreshed is not None
        assert refreshed.last_organization_id == org.id


class TestMembers:
    """Member management endpoints."""

    @pytest.mark.asyncio
    async def test_admin_adds_member_by_email(self, client: AsyncClient, seed: Seeder) -> None:
        org = await seed.organization()
        admin = await seed.user()
        newcomer = await seed.user("newcomer@example.com")
        await seed.member(org, admin, OrgRole.ADMIN)

        response = await client.post(
            f"/api/organizations/{org.id}/members",
            json={"email": "newcomer@example.com"},
            headers=seed.auth(admin),
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["user_id"] == str(newcomer.id)
        assert data["role"] == "MEMBER"

        listed = await client.get(f"/api/organizations/{org.id}/members", headers=seed.auth(admin))
        assert {m["email"] for m in listed.json()["data"]} == {admin.email, "newcomer@example.com"}

    @pytest.mark.asyncio
    async def test_add_member_rejects_bad_email(self, client: AsyncClient, seed: Seeder) -> None:
        org = await seed.organization()
        owner = await seed.user()
        await seed.member(org, owner, OrgRole.OWNER)

        response = await client.post(
            f"/api/organizations/{org.id}/members",
            json={"email": "not-an-email"},
            headers=seed.auth(owner),
        )

        assert response.status_code == 400
        assert response.json()["field_errors"][0]["path"] == "body.email"

    @pytest.mark.asyncio
    async def test_add_unknown_user(self, client: AsyncClient, seed: Seeder) -> None:
        org = await seed.organization()
        owner = await seed.user()
        await seed.member(org, owner, OrgRole.OWNER)

        response = await client.post(
            f"/api/organizations/{org.id}/members",
            json={"email": "nobody@example.com"},
            headers=seed.auth(owner),
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_add_existing_member_conflicts(self, client: AsyncClient, seed: Seeder) -> None:
        org = await seed.organization()
        owner = await seed.user()
        member = await seed.user("member@example.com")
        await seed.member(org, owner, OrgRole.OWNER)
        await seed.member(org, member, OrgRole.MEMBER)

        response = await client.post(
            f"/api/organizations/{org.id}/members",
            json={"email": "member@example.com"},
            headers=seed.auth(owner),
        )

        assert response.status_code == 409
        assert response.json()["kind"] == "conflict"

    @pytest.mark.asyncio
    async def test_only_owner_changes_roles(self, client: AsyncClient, seed: Seeder) -> None:
        org = await seed.organization()
        owner, admin, member = await seed.user(), await seed.user(), await seed.user()
        await seed.member(org, owner, OrgRole.OWNER)
        await seed.member(org, admin, OrgRole.ADMIN)
        await seed.member(org, member, OrgRole.MEMBER)
        path = f"/api/organizations/{org.id}/members/{member.id}"

        denied = await client.patch(path, json={"role": "ADMIN"}, headers=seed.auth(admin))
        allowed = await client.patch(path, json={"role": "ADMIN"}, headers=seed.auth(owner))

        assert denied.status_code == 403
        assert allowed.status_code == 200
        assert allowed.json()["data"]["role"] == "ADMIN"

    @pytest.mark.asyncio
    async def test_invalid_role_is_rejected(self, client: AsyncClient, seed: Seeder) -> None:
        org = await seed.organization()
        owner, member = await seed.user(), await seed.user()
        await seed.member(org, owner, OrgRole.OWNER)
        await seed.member(org, member, OrgRole.MEMBER)

        response = await client.patch(
            f"/api/organizations/{org.id}/members/{member.id}",
            json={"role": "SUPERUSER"},
            headers=seed.auth(owner),
        )

        assert response.status_code == 400
        assert response.json()["field_errors"][0]["path"] == "body.role"

    @pytest.mark.asyncio
    async def test_last_owner_cannot_be_demoted(self, client: AsyncClient, seed: Seeder) -> None:
        org = await seed.organization()
        owner = await seed.user()
        await seed.member(org, owner, OrgRole.OWNER)

        response = await client.patch(
            f"/api/organizations/{org.id}/members/{owner.id}",
            json={"role": "MEMBER"},
            headers=seed.auth(owner),
        )

        assert response.status_code == 400
        assert response.json()["reason"] == "last_owner"

    @pytest.mark.asyncio
    async def test_co_owners_cannot_both_step_down(self, client: AsyncClient, seed: Seeder) -> None:
        org = await seed.organization()
        first, second = await seed.user(), await seed.user()
        await seed.member(org, first, OrgRole.OWNER)
        await seed.member(org, second, OrgRole.OWNER)

        demoted = await client.patch(
            f"/api/organizations/{org.id}/members/{second.id}",
            json={"role": "ADMIN"},
            headers=seed.auth(first),
        )
        refused = await client.patch(
            f"/api/organizations/{org.id}/members/{first.id}",
            json={"role": "ADMIN"},
            headers=seed.auth(first),
        )

        assert demoted.status_code == 200
        assert refused.status_code == 400
        assert refused.json()["reason"] == "last_owner"

    @pytest.mark.asyncio
    async def test_last_owner_cannot_leave(self, client: AsyncClient, seed: Seeder) -> None:
        org = await seed.organization()
        owner = await seed.user()
        await seed.member(org, owner, OrgRole.OWNER)

        response = await client.delete(f"/api/organizations/{org.id}/leave", headers=seed.auth(owner))

        assert response.status_code == 400
        assert response.json()["reason"] == "last_owner"

    @pytest.mark.asyncio
    async def test_member_leaves(self, client: AsyncClient, seed: Seeder) -> None:
        org = await seed.organization()
        owner, member = await seed.user(), await seed.user()
        await seed.member(org, owner, OrgRole.OWNER)
        await seed.member(org, member, OrgRole.MEMBER)

        left = await client.delete(f"/api/organizations/{org.id}/leave", headers=seed.auth(member))
        after = await client.get(f"/api/organizations/{org.id}", headers=seed.auth(member))

        assert left.status_code == 200
        assert after.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_cannot_remove_owner(self, client: AsyncClient, seed: Seeder) -> None:
        org = await seed.organization()
        owner, admin = await seed.user(), await seed.user()
        await seed.member(org, owner, OrgRole.OWNER)
        await seed.member(org, admin, OrgRole.ADMIN)

        response = await client.delete(
            f"/api/organizations/{org.id}/members/{owner.id}", headers=seed.auth(admin)
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_removes_member(self, client: AsyncClient, seed: Seeder) -> None:
        org = await seed.organization()
        admin, member = await seed.user(), await seed.user()
        await seed.member(org, admin, OrgRole.ADMIN)
        await seed.member(org, member, OrgRole.MEMBER)

        response = await client.delete(
            f"/api/organizations/{org.id}/members/{member.id}", headers=seed.auth(admin)
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Member removed"

    @pytest.mark.asyncio
    async def test_remove_unknown_member(self, client: AsyncClient, seed: Seeder) -> None:
        org = await seed.organization()
        owner = await seed.user()
        await seed.member(org, owner, OrgRole.OWNER)

        response = await client.delete(
            f"/api/organizations/{org.id}/members/{uuid.uuid4()}", headers=seed.auth(owner)
        )

        assert response.status_code == 404
