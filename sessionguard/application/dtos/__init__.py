"""Data Transfer Objects for application layer."""

from sessionguard.application.dtos.auth_dto import (
    LoginDTO,
    LogoutDTO,
    LogoutResultDTO,
    PrincipalDTO,
    RefreshTokenDTO,
    TokenDTO,
)

__all__ = [
    "LoginDTO",
    "LogoutDTO",
    "LogoutResultDTO",
    "PrincipalDTO",
    "RefreshTokenDTO",
    "TokenDTO",
]
