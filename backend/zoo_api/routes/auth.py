"""
Zoo API — Auth Route Handlers
===============================

What:  Registration, login, profile, admin user creation, password change.
Who:   Staff app and the public ticket site.

Registration is public and always creates a visitor account; a welcome
mail is queued as a background task after the response is sent.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.database import get_db_session
from zoo_api.dependencies import ADMIN, get_current_user, require_roles
from zoo_api.models.user import User
from zoo_api.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserCreate,
    UserResponse,
)
from zoo_api.schemas.common import ApiResponse, ErrorResponse
from zoo_api.services.auth_service import auth_service, create_access_token
from zoo_api.services.mail_service import mail_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=ApiResponse[TokenResponse],
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Email already registered", "model": ErrorResponse}},
    summary="Create a visitor account",
)
async def register(
    body: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[TokenResponse]:
    user = await auth_service.register(db, body)
    token, expires_in = create_access_token(user)
    background_tasks.add_task(
        mail_service.send_welcome, user.email, user.first_name or user.email
    )
    return ApiResponse[TokenResponse](
        data=TokenResponse(
            token=token,
            expires_in=expires_in,
            user=UserResponse.model_validate(user),
        ),
        message="Account created",
    )


@router.post(
    "/login",
    response_model=ApiResponse[TokenResponse],
    responses={401: {"description": "Invalid credentials or locked account", "model": ErrorResponse}},
    summary="Exchange email and password for a bearer token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[TokenResponse]:
    token, expires_in, user = await auth_service.login(db, body)
    return ApiResponse[TokenResponse](
        data=TokenResponse(
            token=token,
            expires_in=expires_in,
            user=UserResponse.model_validate(user),
        )
    )


@router.get("/profile", response_model=ApiResponse[UserResponse], summary="Current account")
async def profile(user: User = Depends(get_current_user)) -> ApiResponse[UserResponse]:
    return ApiResponse[UserResponse](data=UserResponse.model_validate(user))


@router.post(
    "/users",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create an account with any role (admin only)",
)
async def create_user(
    body: UserCreate,
    _: User = Depends(require_roles(*ADMIN)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[UserResponse]:
    user = await auth_service.create_user(db, body)
    return ApiResponse[UserResponse](data=UserResponse.model_validate(user), message="User created")


@router.post(
    "/change-password",
    response_model=ApiResponse[None],
    summary="Change the current account's password",
)
async def change_password(
    body: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[None]:
    await auth_service.change_password(db, user, body)
    return ApiResponse[None](message="Password changed")
