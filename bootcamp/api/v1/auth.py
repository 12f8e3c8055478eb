"""
Authentication endpoints.
"""

import uuid

from fastapi import APIRouter, HTTPException, Request, status

from bootcamp.api.deps import AdminUser, CurrentUser, DbSession, get_client_ip, get_user_agent
from bootcamp.kernel.identity.identity_service import IdentityService
from bootcamp.kernel.identity.jwt import TokenPair
from bootcamp.kernel.models.user import User
from bootcamp.kernel.permissions.access_guard import landing_path
from bootcamp.schemas.auth import (
    LogoutRequest,
    RefreshTokenRequest,
    RoleChangeRequest,
    TokenResponse,
    UserCreate,
    UserLogin,
    UserResponse,
)
from bootcamp.schemas.common import SuccessResponse

router = APIRouter()


def _token_response(user: User, token_pair: TokenPair, return_path: str | None = None) -> TokenResponse:
    return TokenResponse(
        access_token=token_pair.access_token,
        refresh_token=token_pair.refresh_token,
        token_type=token_pair.token_type,
        expires_in=token_pair.expires_in,
        user=UserResponse.model_validate(user),
        landing_path=landing_path(user, return_path),
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: Request,
    data: UserCreate,
    db: DbSession,
):
    """
    Register a new user account.

    Returns access and refresh tokens on successful registration.
    """
    identity_service = IdentityService(db)
    ip_address = get_client_ip(request)

    try:
        await identity_service.register_user(
            email=data.email,
            password=data.password,
            full_name=data.full_name,
            ip_address=ip_address,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    result = await identity_service.authenticate(
        email=data.email,
        password=data.password,
        ip_address=ip_address,
        user_agent=get_user_agent(request),
    )
    if not result:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to authenticate after registration",
        )

    user, token_pair = result
    return _token_response(user, token_pair)


@router.post("/login", response_model=TokenResponse)
async def login(
    request: Request,
    data: UserLogin,
    db: DbSession,
):
    """
    Authenticate user and return tokens.

    ``landing_path`` is the saved return path when the user may view it,
    otherwise the user's role home.
    """
    result = await IdentityService(db).authenticate(
        email=data.email,
        password=data.password,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    if not result:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    user, token_pair = result
    return _token_response(user, token_pair, data.return_path)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(data: RefreshTokenRequest, db: DbSession):
    """Refresh tokens. The old refresh token is revoked (rotation)."""
    result = await IdentityService(db).refresh_tokens(refresh_token=data.refresh_token)
    if not result:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    user, token_pair = result
    return _token_response(user, token_pair)


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    request: Request,
    user: CurrentUser,
    db: DbSession,
    data: LogoutRequest | None = None,
):
    """
    Log out by revoking refresh token(s).

    Without a body, every refresh token of the user is revoked.
    """
    await IdentityService(db).logout(
        user_id=user.id,
        refresh_token=data.refresh_token if data else None,
        revoke_all=data is None or data.revoke_all,
        ip_address=get_client_ip(request),
    )
    return SuccessResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(user: CurrentUser):
    """Get current user's profile."""
    return UserResponse.model_validate(user)


@router.patch("/users/{user_id}/role", response_model=UserResponse)
async def change_user_role(
    request: Request,
    user_id: uuid.UUID,
    data: RoleChangeRequest,
    admin: AdminUser,
    db: DbSession,
):
    """Change a user's role (admin only)."""
    user = await IdentityService(db).change_role(
        user_id=user_id,
        new_role=data.role,
        changed_by=admin.id,
        ip_address=get_client_ip(request),
    )
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserResponse.model_validate(user)
