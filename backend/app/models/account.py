"""Account request and response schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from backend.app.models.common import AccountType, PaginationQuery
from backend.app.pipeline.validation import Nullable, RequestSchema

AccountName = Annotated[str, Field(min_length=1, max_length=100)]
Description = Annotated[str, Field(max_length=500)]
Institution = Annotated[str, Field(max_length=100)]
CurrencyCode = Annotated[str, Field(min_length=3, max_length=3)]


class CreateAccountRequest(RequestSchema):
    """Body for POST /accounts."""

    name: AccountName
    description: Description | None = None
    institution: Institution | None = None
    account_type: AccountType = AccountType.CHECKING
    balance: Decimal = Decimal("0")
    currency: CurrencyCode = "USD"


class UpdateAccountRequest(RequestSchema):
    """Body for PATCH /accounts/{account_id}.

    ``description`` and ``institution`` are nullable: sending ``null`` clears
    them, omitting them leaves them unchanged.
    """

    name: AccountName | None = None
    description: Nullable[Description] = None
    institution: Nullable[Institution] = None
    account_type: AccountType | None = None
    balance: Decimal | None = None
    currency: CurrencyCode | None = None
    is_active: bool | None = None


class AccountListQuery(PaginationQuery):
    """Query for GET /accounts."""

    include_inactive: bool = False


class AccountResponse(BaseModel):
    """Account as returned to clients."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    name: str
    description: str | None
    institution: str | None
    account_type: AccountType
    balance: Decimal
    currency: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
