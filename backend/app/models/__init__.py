"""Models package - re-exports for convenience."""

from backend.app.models.account import (
    AccountListQuery,
    AccountResponse,
    CreateAccountRequest,
    UpdateAccountRequest,
)
from backend.app.models.auth import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from backend.app.models.common import (
    AccountIdParams,
    AccountType,
    MemberParams,
    OrgIdParams,
    PaginationQuery,
)
from backend.app.models.organization import (
    AddMemberRequest,
    CreateOrganizationRequest,
    MemberInfo,
    OrganizationSummary,
    UpdateMemberRoleRequest,
    UpdateOrganizationRequest,
)

__all__ = [
    # Common
    "AccountType",
    "OrgIdParams",
    "MemberParams",
    "AccountIdParams",
    "PaginationQuery",
    # Accounts
    "CreateAccountRequest",
    "UpdateAccountRequest",
    "AccountListQuery",
    "AccountResponse",
    # Organizations
    "CreateOrganizationRequest",
    "UpdateOrganizationRequest",
    "AddMemberRequest",
    "UpdateMemberRoleRequest",
    "OrganizationSummary",
    "MemberInfo",
    # Auth
    "RegisterRequest",
    "LoginRequest",
    "UserResponse",
    "TokenResponse",
]
