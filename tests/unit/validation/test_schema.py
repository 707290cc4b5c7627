"""Unit tests for field descriptors and schemas."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from killboard.core.constants import DEFAULT_REGION_ID, MAX_PAGE_SIZE
from killboard.validation import (
    ENTITY_ID,
    PAGINATION,
    REGION_QUERY,
    FieldKind,
    Schema,
    enum,
    integer,
    string,
)


@pytest.mark.unit
class TestFieldSpec:
    """Test descriptor constructors and their checks."""

    def test_integer_constructor(self) -> None:
        """Integer descriptors carry their bounds."""
        spec = integer(positive=True, maximum=10)

        assert spec.kind is FieldKind.INTEGER
        assert spec.positive is True
        assert spec.maximum == 10
        assert spec.required is True

    def test_enum_requires_choices(self) -> None:
        """An enum without choices is rejected at definition time."""
        with pytest.raises(ValueError, match="at least one choice"):
            enum()

    def test_required_field_cannot_have_default(self) -> None:
        """Defaults only make sense on optional fields."""
        with pytest.raises(ValueError, match="cannot declare a default"):
            integer(default=5)

    def test_descriptor_is_immutable(self) -> None:
        """Descriptors are frozen."""
        spec = string()
        with pytest.raises(AttributeError):
            spec.pattern = "x"  # type: ignore[misc]


@pytest.mark.unit
class TestSchema:
    """Test schema definition and composition."""

    def test_fields_are_read_only(self) -> None:
        """The field mapping cannot be changed after definition."""
        schema = Schema({"id": integer()})

        with pytest.raises(TypeError):
            schema.fields["other"] = integer()  # type: ignore[index]

    def test_schema_does_not_share_callers_mapping(self) -> None:
        """Mutating the source dict does not change the schema."""
        fields = {"id": integer()}
        schema = Schema(fields)
        fields["extra"] = integer()

        assert "extra" not in schema
        assert "id" in schema

    def test_model_is_built_once(self) -> None:
        """The compiled model is created at definition time."""
        schema = Schema({"id": integer()}, name="Lookup")

        assert schema.model is schema.model
        assert schema.model.__name__ == "Lookup"
        assert set(schema.model.model_fields) == {"id"}

    def test_compiled_model_is_frozen(self) -> None:
        """Validated records cannot be modified."""
        record = ENTITY_ID.model.model_validate({"id": "7"})

        with pytest.raises(PydanticValidationError):
            record.id = 8

    def test_composition_merges_fields(self) -> None:
        """``|`` combines fields of both schemas."""
        combined = ENTITY_ID | REGION_QUERY

        assert set(combined.fields) == {"id", "regionId"}
        assert combined.name == "EntityIdRegionQuery"

    def test_composition_right_side_wins(self) -> None:
        """On a name clash the right schema's descriptor is used."""
        left = Schema({"id": integer()})
        right = Schema({"id": string()})

        assert (left | right).fields["id"].kind is FieldKind.STRING

    @pytest.mark.parametrize(
        ("left_closed", "right_closed", "expected"),
        [(False, False, False), (True, False, True), (False, True, True)],
    )
    def test_composition_closed_if_either_side_is(
        self, left_closed: bool, right_closed: bool, expected: bool
    ) -> None:
        """Closedness propagates through composition."""
        left = Schema({"a": integer()}, closed=left_closed)
        right = Schema({"b": integer()}, closed=right_closed)

        assert (left | right).closed is expected


@pytest.mark.unit
class TestNamedSchemas:
    """Test the shared schemas used by routes."""

    def test_entity_id(self) -> None:
        """ENTITY_ID declares one required positive integer."""
        spec = ENTITY_ID.fields["id"]

        assert spec.kind is FieldKind.INTEGER
        assert spec.positive is True
        assert spec.required is True

    def test_region_query_defaults_to_the_forge(self) -> None:
        """The region defaults to the main market hub."""
        spec = REGION_QUERY.fields["regionId"]

        assert spec.required is False
        assert spec.default == DEFAULT_REGION_ID

    def test_pagination_bounds(self) -> None:
        """Page size is capped."""
        assert PAGINATION.fields["perPage"].maximum == MAX_PAGE_SIZE
        assert PAGINATION.fields["page"].default == 1
