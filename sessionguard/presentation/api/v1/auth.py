"""Authentication API endpoints."""

from fastapi import APIRouter, Depends, status

from sessionguard.application.dtos.auth_dto import (
    LoginDTO,
    LogoutDTO,
    LogoutResultDTO,
    PrincipalDTO,
    RefreshTokenDTO,
    TokenDTO,
)
from sessionguard.application.services.auth_service import AuthService
from sessionguard.presentation.dependencies import (
    get_auth_service,
    get_client_ip,
    get_current_principal,
)
from sessionguard.presentation.error_schemas import ErrorResponse


router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post(
    "/login",
    response_model=TokenDTO,
    status_code=status.HTTP_200_OK,
    summary="Admin login",
    description="Authenticate the admin with email and password, returns access and refresh tokens.",
    responses={
        401: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def login(
    dto: LoginDTO,
    auth_service: AuthService = Depends(get_auth_service),
    client_ip: str = Depends(get_client_ip),
):
    """
    Authenticate and receive a new token pair.

    Returns both access token (short-lived) and refresh token (long-lived).
    Use the access token in the Authorization header for subsequent requests.

    Raises:
        401 Unauthorized: If email or password is incorrect
        429 Too Many Requests: If this client exhausted its login attempts
    """
    return await auth_service.login(dto, client_ip)


@router.post(
    "/refresh",
    response_model=TokenDTO,
    status_code=status.HTTP_200_OK,
    summary="Rotate refresh token",
    description="Exchange a refresh token for a new access/refresh pair. Each refresh token works once.",
    responses={401: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
async def refresh_token(
    dto: RefreshTokenDTO,
    auth_service: AuthService = Depends(get_auth_service),
    client_ip: str = Depends(get_client_ip),
):
    """
    Get a new token pair using a refresh token.

    The presented refresh token is consumed. Presenting it again ends the
    whole session family.

    Raises:
        401 Unauthorized: If refresh token is invalid, expired, or already used
    """
    return await auth_service.refresh(dto, client_ip)


@router.post(
    "/logout",
    response_model=LogoutResultDTO,
    status_code=status.HTTP_200_OK,
    summary="Logout",
    description="Revoke the access token and, if given, end the refresh token's family.",
)
async def logout(
    dto: LogoutDTO,
    auth_service: AuthService = Depends(get_auth_service),
    client_ip: str = Depends(get_client_ip),
):
    """Always returns success, even for tokens that were already revoked."""
    return await auth_service.logout(dto, client_ip)


@router.get(
    "/me",
    response_model=PrincipalDTO,
    status_code=status.HTTP_200_OK,
    summary="Get current principal",
    description="Get the identity behind the presented access token.",
    responses={401: {"model": ErrorResponse}},
)
async def get_me(
    principal: PrincipalDTO = Depends(get_current_principal),
):
    """
    Get current authenticated principal.

    This endpoint requires a valid, unrevoked access token in the
    Authorization header:
    Authorization: Bearer <your_access_token>

    Raises:
        401 Unauthorized: If token is missing, invalid, expired, or revoked
    """
    return principal
