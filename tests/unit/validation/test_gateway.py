"""Unit tests for the validation gateway."""

from typing import Any

import pytest
from starlette.requests import Request

from killboard.core.exceptions import FieldError, ValidationError
from killboard.validation import (
    ENTITY_ID,
    PAGINATION,
    REGION_QUERY,
    Err,
    Ok,
    Schema,
    enum,
    integer,
    string,
    validate,
    validated,
)


def _request(
    path_params: dict[str, Any] | None = None, query_string: bytes = b""
) -> Request:
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/",
            "headers": [],
            "query_string": query_string,
            "path_params": path_params or {},
        }
    )


@pytest.mark.unit
class TestValidate:
    """Test coercion, constraints and error collection."""

    @pytest.mark.parametrize("raw", ["42", 42, "1"])
    def test_positive_integer_accepted(self, raw: object) -> None:
        """Decimal strings and ints both satisfy a positive integer field."""
        result = validate({"id": raw}, ENTITY_ID)

        assert isinstance(result, Ok)
        assert result.value.id == int(str(raw))

    def test_non_numeric_string_rejected(self) -> None:
        """Coercion failures report the field."""
        result = validate({"id": "abc"}, ENTITY_ID)

        assert isinstance(result, Err)
        assert len(result.errors) == 1
        assert result.errors[0].field == "id"
        assert result.errors[0].message.startswith("Input should be a valid integer")

    @pytest.mark.parametrize("raw", ["-1", "0"])
    def test_non_positive_rejected(self, raw: str) -> None:
        """Constraint failures are checked after coercion."""
        result = validate({"id": raw}, ENTITY_ID)

        assert result == Err(
            (FieldError(field="id", message="Input should be greater than 0"),)
        )

    def test_fractional_string_rejected(self) -> None:
        """Integers do not accept fractional input."""
        result = validate({"id": "1.5"}, ENTITY_ID)

        assert isinstance(result, Err)
        assert result.errors[0].field == "id"

    @pytest.mark.parametrize("raw", [True, False])
    def test_boolean_rejected(self, raw: bool) -> None:
        """Booleans are not read as 1 or 0."""
        result = validate({"id": raw}, ENTITY_ID)

        assert result == Err(
            (FieldError(field="id", message="Input should be a valid integer"),)
        )

    def test_optional_integer_rejects_boolean(self) -> None:
        """Optional integers reject booleans too."""
        result = validate({"regionId": True}, REGION_QUERY)

        assert isinstance(result, Err)
        assert result.errors[0].field == "regionId"

    def test_missing_required_field(self) -> None:
        """A required field that is absent is reported."""
        result = validate({}, ENTITY_ID)

        assert result == Err((FieldError(field="id", message="Field required"),))

    def test_optional_field_uses_default(self) -> None:
        """Absent optional fields resolve to their default."""
        result = validate({}, REGION_QUERY)

        assert isinstance(result, Ok)
        assert result.value.regionId == 10000002

    def test_optional_field_still_validated(self) -> None:
        """A provided optional value must satisfy its constraints."""
        result = validate({"regionId": "abc"}, REGION_QUERY)

        assert isinstance(result, Err)
        assert result.errors[0].field == "regionId"

    def test_every_field_is_checked(self) -> None:
        """All invalid fields are reported at once, in schema order."""
        result = validate({"id": "-1", "regionId": "abc"}, ENTITY_ID | REGION_QUERY)

        assert isinstance(result, Err)
        assert [error.field for error in result.errors] == ["id", "regionId"]

    def test_one_error_per_field(self) -> None:
        """A coercion failure stops constraint checks for that field."""
        schema = Schema({"n": integer(positive=True, maximum=5)})

        result = validate({"n": "abc"}, schema)

        assert isinstance(result, Err)
        assert len(result.errors) == 1

    def test_maximum_constraint(self) -> None:
        """Upper bounds are enforced."""
        result = validate({"perPage": "500"}, PAGINATION)

        assert result == Err(
            (
                FieldError(
                    field="perPage",
                    message="Input should be less than or equal to 200",
                ),
            )
        )

    def test_unknown_fields_ignored_by_open_schema(self) -> None:
        """Open schemas drop undeclared input."""
        result = validate({"id": "5", "debug": "1"}, ENTITY_ID)

        assert isinstance(result, Ok)
        assert result.value.model_dump() == {"id": 5}

    def test_unknown_fields_rejected_by_closed_schema(self) -> None:
        """Closed schemas report undeclared input."""
        schema = Schema({"id": integer()}, closed=True)

        result = validate({"id": "5", "debug": "1"}, schema)

        assert result == Err(
            (FieldError(field="debug", message="Extra inputs are not permitted"),)
        )

    def test_enum_field(self) -> None:
        """Enums accept only their choices."""
        schema = Schema({"side": enum("kills", "losses")})

        assert isinstance(validate({"side": "kills"}, schema), Ok)
        assert validate({"side": "wins"}, schema) == Err(
            (FieldError(field="side", message="Input should be 'kills' or 'losses'"),)
        )

    def test_string_pattern(self) -> None:
        """String patterns are enforced."""
        schema = Schema({"slug": string(pattern=r"^[a-z]+$")})

        assert isinstance(validate({"slug": "jita"}, schema), Ok)
        result = validate({"slug": "Jita 4-4"}, schema)
        assert isinstance(result, Err)
        assert "pattern" in result.errors[0].message

    def test_string_accepts_numbers(self) -> None:
        """Numbers are rendered to text for string fields."""
        schema = Schema({"name": string()})

        result = validate({"name": 42}, schema)

        assert isinstance(result, Ok)
        assert result.value.name == "42"

    def test_input_mapping_not_modified(self) -> None:
        """Validation never mutates the raw input."""
        raw = {"id": "42"}

        validate(raw, ENTITY_ID)

        assert raw == {"id": "42"}


@pytest.mark.unit
class TestValidatedDependency:
    """Test the FastAPI dependency wrapper."""

    async def test_returns_record_from_path_params(self) -> None:
        """Valid path parameters produce the typed record."""
        dependency = validated(ENTITY_ID, "path")

        record = await dependency(_request(path_params={"id": "42"}))

        assert record.id == 42

    async def test_reads_query_params(self) -> None:
        """The query source reads the query string."""
        dependency = validated(REGION_QUERY, "query")

        record = await dependency(_request(query_string=b"regionId=10000043"))

        assert record.regionId == 10000043

    async def test_request_source_reports_path_and_query_errors(self) -> None:
        """The request source validates path and query input in one pass."""
        dependency = validated(ENTITY_ID | REGION_QUERY, "request")
        request = _request(path_params={"id": "-1"}, query_string=b"regionId=abc")

        with pytest.raises(ValidationError) as exc_info:
            await dependency(request)

        assert [error.field for error in exc_info.value.errors] == ["id", "regionId"]
        assert exc_info.value.context["source"] == "request"

    async def test_request_source_prefers_path_params(self) -> None:
        """A path parameter wins over a query parameter of the same name."""
        dependency = validated(ENTITY_ID | REGION_QUERY, "request")
        request = _request(path_params={"id": "5"}, query_string=b"id=7&regionId=9")

        record = await dependency(request)

        assert record.id == 5
        assert record.regionId == 9

    async def test_raises_validation_error(self) -> None:
        """Invalid input raises with every field error attached."""
        dependency = validated(ENTITY_ID, "path")

        with pytest.raises(ValidationError) as exc_info:
            await dependency(_request(path_params={"id": "-1"}))

        assert exc_info.value.errors == (
            FieldError(field="id", message="Input should be greater than 0"),
        )
        assert exc_info.value.context["source"] == "path"
        assert exc_info.value.context["fields"] == ["id"]

    def test_dependency_name_identifies_schema(self) -> None:
        """Each dependency gets a distinct, readable name."""
        assert validated(ENTITY_ID, "path").__name__ == "validate_path_EntityId"
        assert validated(REGION_QUERY, "query").__name__ == "validate_query_RegionQuery"
