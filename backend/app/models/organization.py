"""Organization and membership schemas."""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from backend.app.pipeline.context import OrgRole
from backend.app.pipeline.validation import RequestSchema

OrganizationName = Annotated[str, Field(min_length=1, max_length=100)]


class CreateOrganizationRequest(RequestSchema):
    """Body for POST /organizations."""

    name: OrganizationName


class UpdateOrganizationRequest(RequestSchema):
    """Body for PATCH /organizations/{org_id}."""

    name: OrganizationName


class AddMemberRequest(RequestSchema):
    """Body for POST /organizations/{org_id}/members."""

    email: EmailStr
    role: OrgRole = OrgRole.MEMBER


class UpdateMemberRoleRequest(RequestSchema):
    """Body for PATCH /organizations/{org_id}/members/{user_id}."""

    role: OrgRole


class OrganizationSummary(BaseModel):
    """Organization plus the caller's role in it."""

    id: UUID
    name: str
    role: OrgRole


class MemberInfo(BaseModel):
    """One member of an organization."""

    user_id: UUID
    email: str
    name: str | None
    role: OrgRole
    joined_at: datetime
