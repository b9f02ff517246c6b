"""Current-user profile and settings endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from lablinc.api import deps
from lablinc.core.security import verify_password
from lablinc.models.user import User
from lablinc.schemas.user import (
    PasswordChange,
    UserRead,
    UserSettingsRead,
    UserSettingsUpdate,
    UserUpdate,
)
from lablinc.services import auth_service, user_service

router = APIRouter()


@router.get("/me", response_model=UserRead, summary="Current user profile")
async def read_current_user(
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> UserRead:
    """Return the authenticated user's profile."""
    return UserRead.model_validate(current_user)


@router.patch("/me", response_model=UserRead, summary="Update own profile")
async def update_current_user(
    payload: UserUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> UserRead:
    updated = await user_service.update_user(session, current_user, payload)
    return UserRead.model_validate(updated)


@router.get("/me/settings", response_model=UserSettingsRead, summary="Own settings")
async def read_settings(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> UserSettingsRead:
    settings = await user_service.get_settings_for_user(session, current_user.id)
    return UserSettingsRead.model_validate(settings)


@router.put("/me/settings", response_model=UserSettingsRead, summary="Update settings")
async def update_settings(
    payload: UserSettingsUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> UserSettingsRead:
    settings = await user_service.update_settings(session, current_user.id, payload)
    return UserSettingsRead.model_validate(settings)


@router.put("/me/password", response_model=UserRead, summary="Change own password")
async def change_password(
    payload: PasswordChange,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> UserRead:
    """Replace the password; every refresh token issued so far is revoked."""
    if not verify_password(payload.current_password, current_user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )
    user = await auth_service.set_password(session, current_user, payload.new_password)
    return UserRead.model_validate(user)
