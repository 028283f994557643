"""Common request schemas and enums shared across routes."""

from enum import Enum
from uuid import UUID

from pydantic import Field

from backend.app.pipeline.validation import RequestSchema


class AccountType(str, Enum):
    """Kind of financial account."""

    CHECKING = "CHECKING"
    SAVINGS = "SAVINGS"
    CREDIT_CARD = "CREDIT_CARD"
    CASH = "CASH"
    INVESTMENT = "INVESTMENT"
    OTHER = "OTHER"


class OrgIdParams(RequestSchema):
    """Path params for organization-level routes."""

    org_id: UUID


class MemberParams(RequestSchema):
    """Path params for a single member of an organization."""

    org_id: UUID
    user_id: UUID


class AccountIdParams(RequestSchema):
    """Path params for a single account."""

    org_id: UUID
    account_id: UUID


class PaginationQuery(RequestSchema):
    """Limit/offset pagination, coerced from query-string values."""

    limit: int = Field(50, ge=1, le=100)
    offset: int = Field(0, ge=0)
