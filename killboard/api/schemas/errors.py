"""Error response schemas.

Every error body has a ``statusMessage``. Validation failures add the list
of field errors; unexpected errors in development add ``debugInfo``. Fields
that are not set are left out of the body entirely, so a lookup miss is
exactly ``{"statusMessage": "Region not found"}``.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FieldErrorDetail(BaseModel):
    """One invalid input field."""

    field: str = Field(..., description="Name of the invalid field", examples=["id"])
    message: str = Field(
        ...,
        description="Why the value was rejected",
        examples=["Input should be greater than 0"],
    )


class ErrorResponse(BaseModel):
    """Body of every error response."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {"statusMessage": "Region not found"},
                {
                    "statusMessage": "Validation Failed",
                    "errors": [
                        {"field": "id", "message": "Input should be greater than 0"}
                    ],
                },
                {"statusMessage": "Service Unavailable"},
            ]
        },
    )

    status_message: str = Field(
        ...,
        alias="statusMessage",
        description="Human-readable summary of the error",
        examples=["Region not found", "Validation Failed"],
    )

    errors: list[FieldErrorDetail] | None = Field(
        default=None,
        description="Field-level validation errors",
    )

    debug_info: dict[str, Any] | None = Field(
        default=None,
        alias="debugInfo",
        description="Debug information (only populated in development environments)",
        examples=[{"exception_type": "KeyError"}],
    )

    def to_content(self) -> dict[str, Any]:
        """Serialize by alias, dropping unset fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
