"""Tests for schema validation of params, body and query."""

import uuid
from decimal import Decimal

from pydantic import Field

from backend.app.errors import ErrorKind, ValidationError
from backend.app.models.account import AccountListQuery, CreateAccountRequest, UpdateAccountRequest
from backend.app.models.common import AccountIdParams, AccountType
from backend.app.pipeline.result import Err, Ok
from backend.app.pipeline.validation import Nullable, RequestSchema, SchemaValidator, is_nullable


class _Note(RequestSchema):
    title: str = Field(min_length=1)
    body: str | None = None
    label: Nullable[str] = None


def _error_of(result: object) -> ValidationError:
    assert isinstance(result, Err)
    assert isinstance(result.error, ValidationError)
    return result.error


def _paths(error: ValidationError) -> dict[str, str]:
    return {err.path: err.type for err in error.field_errors}


class TestBodyValidation:
    """Body validation against RequestSchema models."""

    def test_minimal_body_keeps_only_sent_fields(self) -> None:
        result = SchemaValidator().validate({"name": "Checking"}, CreateAccountRequest, location="body")

        assert isinstance(result, Ok)
        assert result.value.model_dump(exclude_unset=True) == {"name": "Checking"}
        assert result.value.account_type == AccountType.CHECKING
        assert result.value.balance == Decimal("0")
        assert result.value.currency == "USD"

    def test_empty_name_reports_field_and_constraint(self) -> None:
        error = _error_of(SchemaValidator().validate({"name": ""}, CreateAccountRequest, location="body"))

        assert error.kind == ErrorKind.validation_error
        assert error.status_code == 400
        assert error.reason == "invalid_body"
        assert _paths(error) == {"body.name": "string_too_short"}

    def test_all_violations_are_aggregated(self) -> None:
        error = _error_of(
            SchemaValidator().validate(
                {"name": "", "currency": "DOLLARS", "account_type": "PIGGY_BANK"},
                CreateAccountRequest,
                location="body",
            )
        )

        paths = _paths(error)
        assert set(paths) == {"body.name", "body.currency", "body.account_type"}
        assert paths["body.currency"] == "string_too_long"
        assert paths["body.account_type"] == "enum"

    def test_missing_body_reports_required_fields(self) -> None:
        error = _error_of(SchemaValidator().validate(None, CreateAccountRequest, location="body"))

        assert _paths(error) == {"body.name": "missing"}

    def test_non_object_body_is_rejected(self) -> None:
        error = _error_of(SchemaValidator().validate(["Checking"], CreateAccountRequest, location="body"))

        assert error.field_errors
        assert all(err.path.startswith("body") for err in error.field_errors)

    def test_unknown_fields_are_ignored(self) -> None:
        result = SchemaValidator().validate(
            {"name": "Checking", "organization_id": str(uuid.uuid4())},
            CreateAccountRequest,
            location="body",
        )

        assert isinstance(result, Ok)
        assert "organization_id" not in result.value.model_dump()


class TestNullHandling:
    """Optional fields versus nullable fields."""

    def test_explicit_null_on_optional_field_is_rejected(self) -> None:
        error = _error_of(SchemaValidator().validate({"title": "x", "body": None}, _Note, location="body"))

        assert len(error.field_errors) == 1
        assert error.field_errors[0].path == "body.body"
        assert error.field_errors[0].type == "null_not_allowed"

    def test_explicit_null_on_nullable_field_is_accepted(self) -> None:
        result = SchemaValidator().validate({"title": "x", "label": None}, _Note, location="body")

        assert isinstance(result, Ok)
        assert result.value.model_dump(exclude_unset=True) == {"title": "x", "label": None}

    def test_omitted_optional_field_is_accepted(self) -> None:
        result = SchemaValidator().validate({"title": "x"}, _Note, location="body")

        assert isinstance(result, Ok)
        assert result.value.body is None

    def test_null_errors_combine_with_constraint_errors(self) -> None:
        error = _error_of(
            SchemaValidator().validate({"title": "", "body": None}, _Note, location="body")
        )

        assert _paths(error) == {"body.title": "string_too_short", "body.body": "null_not_allowed"}

    def test_update_account_nullable_fields(self) -> None:
        assert is_nullable(UpdateAccountRequest, "description")
        assert is_nullable(UpdateAccountRequest, "institution")
        assert not is_nullable(UpdateAccountRequest, "name")

        result = SchemaValidator().validate(
            {"description": None, "is_active": False}, UpdateAccountRequest, location="body"
        )
        assert isinstance(result, Ok)
        assert result.value.model_dump(exclude_unset=True) == {"description": None, "is_active": False}

        error = _error_of(
            SchemaValidator().validate({"name": None}, UpdateAccountRequest, location="body")
        )
        assert _paths(error) == {"body.name": "null_not_allowed"}


class TestParamsAndQuery:
    """Path params and query string coercion."""

    def test_params_are_parsed_into_uuids(self) -> None:
        org_id, account_id = uuid.uuid4(), uuid.uuid4()

        result = SchemaValidator().validate(
            {"org_id": str(org_id), "account_id": str(account_id)},
            AccountIdParams,
            location="params",
        )

        assert isinstance(result, Ok)
        assert result.value.org_id == org_id
        assert result.value.account_id == account_id

    def test_bad_param_is_reported_under_params(self) -> None:
        error = _error_of(
            SchemaValidator().validate(
                {"org_id": "not-a-uuid", "account_id": str(uuid.uuid4())},
                AccountIdParams,
                location="params",
            )
        )

        assert error.reason == "invalid_params"
        assert _paths(error) == {"params.org_id": "uuid_parsing"}

    def test_query_strings_are_coerced(self) -> None:
        result = SchemaValidator().validate(
            {"limit": "10", "offset": "20", "include_inactive": "true"},
            AccountListQuery,
            location="query",
        )

        assert isinstance(result, Ok)
        assert result.value.limit == 10
        assert result.value.offset == 20
        assert result.value.include_inactive is True

    def test_query_defaults(self) -> None:
        result = SchemaValidator().validate({}, AccountListQuery, location="query")

        assert isinstance(result, Ok)
        assert (result.value.limit, result.value.offset, result.value.include_inactive) == (50, 0, False)

    def test_query_bounds(self) -> None:
        error = _error_of(
            SchemaValidator().validate({"limit": "0", "offset": "-1"}, AccountListQuery, location="query")
        )

        assert error.reason == "invalid_query"
        assert _paths(error) == {
            "query.limit": "greater_than_equal",
            "query.offset": "greater_than_equal",
        }
