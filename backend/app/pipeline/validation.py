"""Schema validation for params, body and query.

Schemas are pydantic models deriving from ``RequestSchema``. A field declared
``T | None = None`` is optional: it may be omitted, but an explicit ``null`` is
rejected. A field declared ``Nullable[T]`` accepts an explicit ``null``. The two
are distinct so clients can clear a value without it being confused with
"leave unchanged".
"""

from typing import Annotated, Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from backend.app.errors import FieldError, ValidationError
from backend.app.pipeline.result import Err, Ok, Result

Location = Literal["params", "body", "query"]

S = TypeVar("S", bound=BaseModel)


class _NullableMarker:
    """Annotated metadata flagging a field that accepts explicit null."""

    def __repr__(self) -> str:
        return "NULLABLE"


NULLABLE = _NullableMarker()

T = TypeVar("T")
Nullable = Annotated[T | None, NULLABLE]


class RequestSchema(BaseModel):
    """Base for every declarative request schema."""

    model_config = ConfigDict(extra="ignore")


def is_nullable(schema: type[BaseModel], field_name: str) -> bool:
    """Whether ``field_name`` was declared ``Nullable[...]``."""
    field = schema.model_fields[field_name]
    return any(meta is NULLABLE for meta in field.metadata)


def _null_violations(raw: dict[str, Any], schema: type[BaseModel], location: str) -> list[FieldError]:
    errors: list[FieldError] = []
    for name, field in schema.model_fields.items():
        key = field.alias or name
        if key in raw and raw[key] is None and not field.is_required() and not is_nullable(schema, name):
            errors.append(
                FieldError(
                    path=f"{location}.{key}",
                    message="Field may be omitted but must not be null",
                    type="null_not_allowed",
                )
            )
    return errors


def _format_loc(location: str, loc: tuple[int | str, ...]) -> str:
    return ".".join([location, *(str(part) for part in loc)])


class SchemaValidator:
    """Validates one raw input against one schema, aggregating every violation."""

    def validate(self, raw: Any, schema: type[S], *, location: Location) -> Result[S]:
        """Validate ``raw`` against ``schema``.

        Returns:
            ``Ok(model)`` with the coerced value, or ``Err(ValidationError)``
            listing all field violations for this schema.
        """
        if raw is None:
            raw = {}

        errors: list[FieldError] = []
        if isinstance(raw, dict):
            errors.extend(_null_violations(raw, schema, location))

        try:
            model = schema.model_validate(raw)
        except PydanticValidationError as exc:
            seen = {err.path for err in errors}
            for item in exc.errors(include_url=False):
                path = _format_loc(location, item["loc"])
                if path not in seen:
                    errors.append(FieldError(path=path, message=item["msg"], type=item["type"]))
        else:
            if not errors:
                return Ok(model)

        return Err(
            ValidationError(
                f"Invalid request {location}",
                reason=f"invalid_{location}",
                field_errors=errors,
            )
        )
