"""Declarative input validation for route handlers."""

from killboard.validation.gateway import (
    Err,
    Ok,
    ValidationResult,
    validate,
    validated,
)
from killboard.validation.schema import (
    ENTITY_ID,
    PAGINATION,
    REGION_QUERY,
    FieldKind,
    FieldSpec,
    Schema,
    enum,
    integer,
    string,
)

__all__ = [
    "ENTITY_ID",
    "PAGINATION",
    "REGION_QUERY",
    "Err",
    "FieldKind",
    "FieldSpec",
    "Ok",
    "Schema",
    "ValidationResult",
    "enum",
    "integer",
    "string",
    "validate",
    "validated",
]
