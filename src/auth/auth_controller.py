# src/auth/auth_controller.py

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.dependencies import get_current_user
from src.auth.guards import require_tenant_id
from src.common.database.database import get_db_session
from src.common.schemas import ApiResponse, MessageResponse
from src.auth import auth_service, schemas

router = APIRouter(prefix="/auth", tags=["Auth"])


def build_auth_response(user, tokens: schemas.TokenPair) -> schemas.AuthResponse:
    return schemas.AuthResponse(
        user=schemas.UserResponse.model_validate(user),
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
    )


@router.post("/login", response_model=ApiResponse[schemas.AuthResponse])
async def login(
    credentials: schemas.LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
):
    """
    Authenticate a user and return an access/refresh token pair.

    - **email**, **password**: credentials
    - **tenantSubdomain**: clinic subdomain; defaults to the request host's subdomain
    """
    subdomain = credentials.tenant_subdomain or getattr(request.state, "subdomain", None)
    user, tokens = await auth_service.login_user(
        email=credentials.email,
        password=credentials.password,
        tenant_subdomain=subdomain,
        db=db,
        request=request,
    )
    return ApiResponse(data=build_auth_response(user, tokens))


@router.post("/register", response_model=ApiResponse[schemas.AuthResponse], status_code=status.HTTP_201_CREATED)
async def register(
    data: schemas.RegisterRequest,
    tenant_id: UUID = Depends(require_tenant_id("tenantId")),
    db: AsyncSession = Depends(get_db_session),
):
    """Create a receptionist account inside an existing clinic."""
    user, tokens = await auth_service.register_user(
        email=data.email,
        password=data.password,
        name=data.name,
        tenant_id=tenant_id,
        db=db,
    )
    return ApiResponse(data=build_auth_response(user, tokens))


@router.post("/refresh", response_model=ApiResponse[schemas.TokenPair])
async def refresh(
    data: schemas.RefreshTokenRequest,
    db: AsyncSession = Depends(get_db_session),
):
    """Exchange a refresh token for a new token pair."""
    tokens = await auth_service.refresh_tokens(data.refresh_token, db)
    return ApiResponse(data=tokens)


@router.get("/me", response_model=ApiResponse[schemas.ProfileResponse])
async def get_me(
    current_user: schemas.AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    user = await auth_service.get_user_by_id(db, current_user.id)
    return ApiResponse(data=schemas.ProfileResponse.model_validate(user))


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    data: schemas.ChangePasswordRequest,
    current_user: schemas.AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await auth_service.change_password(current_user.id, data.current_password, data.new_password, db)
    return MessageResponse(message="Password changed successfully")


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    current_user: schemas.AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await auth_service.logout_user(current_user.id, current_user.tenant_id, db, request)
    return MessageResponse(message="Logged out successfully")
