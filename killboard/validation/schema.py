"""Declarative field descriptors and schemas for request input.

A ``Schema`` maps field names to ``FieldSpec`` descriptors and is compiled,
once, into a frozen Pydantic model. Validating raw input against the model
coerces values (``"42"`` becomes ``42``) before constraints are checked and
reports every invalid field in one pass.

Schemas are immutable module-level values, composed per route with ``|``::

    ENTITY_ID = Schema({"id": integer(positive=True)}, name="EntityId")
    PRICING = ENTITY_ID | REGION_QUERY
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, create_model
from pydantic_core import PydanticCustomError

from killboard.core.constants import DEFAULT_REGION_ID, MAX_PAGE_SIZE


def _reject_bool(value: Any) -> Any:  # noqa: ANN401
    # bool is an int subclass and lax mode would read True as 1
    if isinstance(value, bool):
        raise PydanticCustomError("int_type", "Input should be a valid integer")
    return value


class FieldKind(StrEnum):
    """Supported value kinds."""

    INTEGER = "integer"
    STRING = "string"
    ENUM = "enum"


@dataclass(frozen=True, slots=True, kw_only=True)
class FieldSpec:
    """Constraint descriptor for one input field.

    Integers accept ints and decimal strings, never booleans. Strings accept
    text, and numbers are rendered as text. Enums accept one of ``choices``.
    """

    kind: FieldKind
    required: bool = True
    default: Any = None
    positive: bool = False
    minimum: int | None = None
    maximum: int | None = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    choices: tuple[str, ...] = ()
    description: str | None = None

    def __post_init__(self) -> None:
        if self.kind is FieldKind.ENUM and not self.choices:
            msg = "enum fields need at least one choice"
            raise ValueError(msg)
        if self.required and self.default is not None:
            msg = "required fields cannot declare a default"
            raise ValueError(msg)

    def annotation(self) -> Any:  # noqa: ANN401 - builds a typing construct
        """Return the Python type this field validates to."""
        if self.kind is FieldKind.INTEGER:
            base: Any = Annotated[int, BeforeValidator(_reject_bool)]
        elif self.kind is FieldKind.STRING:
            base = str
        else:
            base = Literal[self.choices]

        return base if self.required else base | None

    def field_info(self) -> Any:  # noqa: ANN401 - pydantic FieldInfo
        """Return the Pydantic field definition carrying the constraints."""
        constraints = {
            "gt": 0 if self.positive else None,
            "ge": self.minimum,
            "le": self.maximum,
            "min_length": self.min_length,
            "max_length": self.max_length,
            "pattern": self.pattern,
            "description": self.description,
        }
        return Field(
            ... if self.required else self.default,
            **{key: value for key, value in constraints.items() if value is not None},
        )


def integer(
    *,
    positive: bool = False,
    minimum: int | None = None,
    maximum: int | None = None,
    required: bool = True,
    default: int | None = None,
    description: str | None = None,
) -> FieldSpec:
    """Describe an integer field, coerced from decimal strings."""
    return FieldSpec(
        kind=FieldKind.INTEGER,
        positive=positive,
        minimum=minimum,
        maximum=maximum,
        required=required,
        default=default,
        description=description,
    )


def string(
    *,
    min_length: int | None = None,
    max_length: int | None = None,
    pattern: str | None = None,
    required: bool = True,
    default: str | None = None,
    description: str | None = None,
) -> FieldSpec:
    """Describe a text field, optionally bounded by length or pattern."""
    return FieldSpec(
        kind=FieldKind.STRING,
        min_length=min_length,
        max_length=max_length,
        pattern=pattern,
        required=required,
        default=default,
        description=description,
    )


def enum(
    *choices: str,
    required: bool = True,
    default: str | None = None,
    description: str | None = None,
) -> FieldSpec:
    """Describe a field restricted to a fixed set of strings."""
    return FieldSpec(
        kind=FieldKind.ENUM,
        choices=choices,
        required=required,
        default=default,
        description=description,
    )


@dataclass(frozen=True, slots=True, eq=False)
class Schema:
    """An immutable mapping of field names to descriptors.

    Args:
        fields: Field name to descriptor mapping.
        closed: Reject fields not declared here instead of ignoring them.
        name: Name of the generated record model.
    """

    fields: Mapping[str, FieldSpec]
    closed: bool = False
    name: str = "ValidatedInput"
    model: type[BaseModel] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        frozen_fields = MappingProxyType(dict(self.fields))
        object.__setattr__(self, "fields", frozen_fields)
        object.__setattr__(self, "model", self._build_model(frozen_fields))

    def _build_model(self, fields: Mapping[str, FieldSpec]) -> type[BaseModel]:
        config = ConfigDict(
            extra="forbid" if self.closed else "ignore",
            frozen=True,
            coerce_numbers_to_str=True,
        )
        definitions: dict[str, Any] = {
            field_name: (spec.annotation(), spec.field_info())
            for field_name, spec in fields.items()
        }
        return create_model(self.name, __config__=config, **definitions)

    def __or__(self, other: "Schema") -> "Schema":
        """Compose two schemas; fields of ``other`` win on name clashes."""
        return Schema(
            {**self.fields, **other.fields},
            closed=self.closed or other.closed,
            name=f"{self.name}{other.name}",
        )

    def __contains__(self, field_name: object) -> bool:
        return field_name in self.fields


ENTITY_ID = Schema(
    {"id": integer(positive=True, description="Entity identifier")},
    name="EntityId",
)

REGION_QUERY = Schema(
    {
        "regionId": integer(
            positive=True,
            required=False,
            default=DEFAULT_REGION_ID,
            description="Market region for price lookups",
        )
    },
    name="RegionQuery",
)

PAGINATION = Schema(
    {
        "page": integer(positive=True, required=False, default=1),
        "perPage": integer(
            positive=True, maximum=MAX_PAGE_SIZE, required=False, default=50
        ),
    },
    name="Pagination",
)
