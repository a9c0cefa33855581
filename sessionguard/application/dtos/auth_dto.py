"""Authentication DTOs for the application layer."""

from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field

from sessionguard.domain.entities.principal import Principal

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128


def strip_whitespace(v: str | None) -> str | None:
    """Strip whitespace from string values."""
    return v.strip() if isinstance(v, str) else v


class LoginDTO(BaseModel):
    """
    DTO for admin login request.

    Validation (structural only, before any rate limit or credential check):
    - email: Must be valid email format (EmailStr), surrounding whitespace trimmed
    - password: 8 to 128 characters; the upper bound caps hashing cost
    """

    email: Annotated[EmailStr, BeforeValidator(strip_whitespace)] = Field(
        ..., description="Admin email address"
    )
    password: str = Field(
        ...,
        min_length=MIN_PASSWORD_LENGTH,
        max_length=MAX_PASSWORD_LENGTH,
        description="Admin password",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "email": "admin@example.com",
                    "password": "securepassword123"
                }
            ]
        }
    )


class TokenDTO(BaseModel):
    """DTO for token pair response."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token lifetime in seconds")

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "access_token": "eyJhbGciOiJIUzUxMiIsInR5cCI6IkpXVCJ9...",
                    "refresh_token": "eyJhbGciOiJIUzUxMiIsInR5cCI6IkpXVCJ9...",
                    "token_type": "bearer",
                    "expires_in": 900
                }
            ]
        }
    )


class RefreshTokenDTO(BaseModel):
    """DTO for refresh token request."""

    refresh_token: str = Field(..., min_length=1, description="JWT refresh token")

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "refresh_token": "eyJhbGciOiJIUzUxMiIsInR5cCI6IkpXVCJ9..."
                }
            ]
        }
    )


class LogoutDTO(BaseModel):
    """DTO for logout request. The refresh token is optional."""

    access_token: str = Field(..., description="Access token to revoke")
    refresh_token: str | None = Field(
        default=None, description="Refresh token whose family should be ended"
    )


class LogoutResultDTO(BaseModel):
    """Logout always reports success."""

    success: bool = True


class PrincipalDTO(BaseModel):
    """DTO for the authenticated principal."""

    user_id: str
    email: str
    role: str

    @classmethod
    def from_entity(cls, principal: Principal) -> "PrincipalDTO":
        return cls(user_id=principal.user_id, email=principal.email, role=principal.role)
