from dataclasses import asdict, dataclass, field
from typing import Any, Generic, List, Optional, Type, TypeVar

from fastapi import Request
from pydantic import BaseModel, ValidationError

from .errors import ValidationFailed

M = TypeVar("M", bound=BaseModel)

BODY_FIELD = "body"


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


@dataclass
class ValidationResult(Generic[M]):
    """Either a validated model or the list of every field that failed."""
    value: Optional[M] = None
    errors: List[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def error_details(self) -> List[dict]:
        return [asdict(error) for error in self.errors]


def to_field_error(error: dict) -> FieldError:
    loc = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "Invalid value")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return FieldError(field=loc or BODY_FIELD, message=message)


def validate_payload(schema: Type[M], data: Any) -> ValidationResult[M]:
    """Validate ``data`` against ``schema`` without raising.

    Defaults are applied only when the whole payload is valid.
    """
    if not isinstance(data, dict):
        return ValidationResult(errors=[FieldError(BODY_FIELD, "Request body must be a JSON object")])
    try:
        value = schema.model_validate(data)
    except ValidationError as exc:
        return ValidationResult(errors=[to_field_error(error) for error in exc.errors()])
    return ValidationResult(value=value)


def validated_body(schema: Type[M]):
    """Build a dependency that parses the JSON body into ``schema`` or raises ``ValidationFailed``."""

    async def dependency(request: Request) -> M:
        try:
            data = await request.json()
        except ValueError:
            raise ValidationFailed([asdict(FieldError(BODY_FIELD, "Request body must be valid JSON"))])

        result = validate_payload(schema, data)
        if not result.ok:
            raise ValidationFailed(result.error_details())
        return result.value

    return dependency


def validated_query(schema: Type[M]):
    """Build a dependency that validates the query string into ``schema`` or raises ``ValidationFailed``."""

    def dependency(request: Request) -> M:
        result = validate_payload(schema, dict(request.query_params))
        if not result.ok:
            raise ValidationFailed(result.error_details())
        return result.value

    return dependency
