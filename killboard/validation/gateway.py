"""Validation gateway turning raw request input into typed records.

``validate`` is pure: it never suspends, performs no I/O and does not log.
It coerces and checks every field of the schema and either returns the
typed record or every field error found. Route handlers do not call it
directly; they depend on ``validated(schema, source)`` which raises
``ValidationError`` so the registered exception handler produces the 400
response.
"""

from collections.abc import Callable, Coroutine, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from fastapi import Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from killboard.core.exceptions import FieldError, ValidationError
from killboard.validation.schema import Schema

type InputSource = Literal["path", "query", "request"]


@dataclass(frozen=True, slots=True)
class Ok[T]:
    """Successful validation carrying the typed record."""

    value: T


@dataclass(frozen=True, slots=True)
class Err:
    """Failed validation carrying one error per invalid field."""

    errors: tuple[FieldError, ...]


type ValidationResult[T] = Ok[T] | Err


def _field_name(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc) if loc else "__root__"


def validate(raw: Mapping[str, Any], schema: Schema) -> ValidationResult[BaseModel]:
    """Validate ``raw`` against ``schema``.

    Values are coerced before constraints are checked, so ``"42"`` satisfies
    a positive integer field and ``"abc"`` fails it. Every field is checked
    even after the first failure.

    Args:
        raw: Untyped input, e.g. path parameters or query parameters.
        schema: The schema to validate against.

    Returns:
        ValidationResult: ``Ok`` with the frozen record, or ``Err`` with the
        field errors in schema order.
    """
    try:
        record = schema.model.model_validate(dict(raw))
    except PydanticValidationError as exc:
        return Err(
            tuple(
                FieldError(field=_field_name(error["loc"]), message=error["msg"])
                for error in exc.errors(include_url=False)
            )
        )
    return Ok(record)


def _raw_input(request: Request, source: InputSource) -> Mapping[str, Any]:
    if source == "path":
        return request.path_params
    if source == "query":
        return request.query_params
    # Path parameters win over query parameters of the same name
    return {**request.query_params, **request.path_params}


def validated(
    schema: Schema, source: InputSource = "path"
) -> Callable[[Request], Coroutine[Any, Any, BaseModel]]:
    """Build a FastAPI dependency validating one input source.

    Args:
        schema: Schema the input must satisfy.
        source: ``"path"`` for path parameters, ``"query"`` for the query string,
            ``"request"`` for both merged, so a composed schema reports the
            errors of every parameter at once.

    Returns:
        A dependency returning the validated record or raising ValidationError.

    Example:
        >>> @router.get("/regions/{id}")
        ... async def get_region(
        ...     params: Annotated[BaseModel, Depends(validated(ENTITY_ID))],
        ... ) -> dict[str, Any]: ...
    """

    async def dependency(request: Request) -> BaseModel:
        raw = _raw_input(request, source)
        match validate(raw, schema):
            case Ok(record):
                return record
            case Err(errors):
                raise ValidationError(errors, context={"source": source})

    dependency.__name__ = f"validate_{source}_{schema.name}"
    return dependency
