"""Pydantic models for error responses used in OpenAPI schema generation."""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Model for every non-validation error response.

    This is the format returned by the handlers in
    sessionguard/presentation/exception_handlers.py.
    """

    success: bool = Field(default=False, description="Always false for errors")
    error: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Invalid email or password", "Invalid or expired refresh token"],
    )
    error_code: str = Field(
        ...,
        description="Machine-readable error code for client-side error handling",
        examples=["INVALID_CREDENTIALS", "INVALID_TOKEN", "RATE_LIMITED"],
    )


class ValidationErrorDetail(BaseModel):
    """Model for individual field validation error.

    Represents a single validation error with the field location and error message.
    """

    field: str = Field(
        ...,
        description="The field path where the validation error occurred (e.g., 'body.email')",
        examples=["body.email", "body.password"],
    )
    message: str = Field(
        ...,
        description="Human-readable error message describing what went wrong",
        examples=[
            "value is not a valid email address",
            "String should have at least 8 characters",
        ],
    )


class ValidationErrorResponse(ErrorResponse):
    """Model for the complete 422 validation error response."""

    errors: list[ValidationErrorDetail] = Field(
        ...,
        description="List of all validation errors found in the request",
        min_length=1,
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "success": False,
                "error": "Validation failed",
                "error_code": "VALIDATION_ERROR",
                "errors": [
                    {
                        "field": "body.email",
                        "message": "value is not a valid email address",
                    },
                ],
            }
        }
    }
