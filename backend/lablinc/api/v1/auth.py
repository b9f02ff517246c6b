"""Authentication endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    HTTPException,
    Request,
    Response,
    status,
)
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from lablinc.api import deps
from lablinc.core.config import get_settings
from lablinc.models.user import User
from lablinc.schemas.auth import (
    EmailVerificationConfirm,
    PasswordResetConfirm,
    PasswordResetRequest,
    RefreshRequest,
    RegistrationRequest,
    RegistrationResponse,
    Token,
    TokenDispatched,
)
from lablinc.schemas.user import UserRead
from lablinc.services import audit_service, auth_service, notification_service

router = APIRouter()

_LOGIN_RATE_DEP = deps.rate_limit(deps.settings.rate_limit_login, fallback=(10, 60))
_DEFAULT_RATE_DEP = deps.rate_limit(
    deps.settings.rate_limit_default, fallback=(100, 60)
)

_RESET_REQUESTED = "If that account exists, a password reset email has been sent"


def _event_payload_for_user(user: User) -> dict[str, str]:
    return {"email": user.email, "role": user.role.value}


def _schedule_verification_email(
    background_tasks: BackgroundTasks, user: User, token: str
) -> None:
    subject, body = notification_service.build_email_verification_email(
        name=user.name, token=token
    )
    notification_service.schedule_email(
        background_tasks, recipients=[user.email], subject=subject, body=body
    )


@router.post(
    "/token",
    response_model=Token,
    summary="Obtain access token",
    dependencies=[_LOGIN_RATE_DEP],
)
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    request: Request,
) -> Token:
    """Validate credentials and issue a bearer token plus a refresh token."""
    user = await auth_service.authenticate_user(
        session, email=form_data.username, password=form_data.password
    )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token, refresh_token = await auth_service.issue_session_tokens(
        session, user
    )
    await audit_service.record_event(
        session,
        actor_id=user.id,
        action="auth.login",
        entity_type="user",
        entity_id=user.id,
        description="Successful login",
        payload=_event_payload_for_user(user),
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return Token(access_token=access_token, refresh_token=refresh_token)


@router.post(
    "/register",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register an MSME or institute",
    dependencies=[_DEFAULT_RATE_DEP],
)
async def register(
    payload: RegistrationRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    background_tasks: BackgroundTasks,
    request: Request,
) -> RegistrationResponse:
    try:
        user = await auth_service.register_user(session, payload)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc

    subject, body = notification_service.build_welcome_email(
        name=user.name, role=user.role.value
    )
    notification_service.schedule_email(
        background_tasks, recipients=[user.email], subject=subject, body=body
    )
    verification_token, _ = await auth_service.request_email_verification(
        session, user
    )
    _schedule_verification_email(background_tasks, user, verification_token)
    if user.phone:
        notification_service.schedule_sms(
            background_tasks,
            phone_numbers=[user.phone],
            message="Welcome to LabLinc! Your account is ready.",
        )
    await audit_service.record_event(
        session,
        actor_id=user.id,
        action="auth.register",
        entity_type="user",
        entity_id=user.id,
        description="Self-service registration",
        payload=_event_payload_for_user(user),
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    access_token, refresh_token = await auth_service.issue_session_tokens(
        session, user
    )
    return RegistrationResponse(
        user=UserRead.model_validate(user),
        access_token=access_token,
        refresh_token=refresh_token,
    )


@router.post(
    "/refresh",
    response_model=Token,
    summary="Rotate a refresh token",
    dependencies=[_LOGIN_RATE_DEP],
)
async def refresh_access_token(
    payload: RefreshRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> Token:
    try:
        _, access_token, refresh_token = await auth_service.refresh_session(
            session, refresh_token=payload.refresh_token
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    return Token(access_token=access_token, refresh_token=refresh_token)


@router.post(
    "/logout", status_code=status.HTTP_204_NO_CONTENT, summary="Revoke refresh tokens"
)
async def logout(
    request: Request,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> Response:
    """Sign out everywhere; outstanding access tokens lapse at their expiry."""
    revoked = await auth_service.logout(session, current_user)
    await audit_service.record_event(
        session,
        actor_id=current_user.id,
        action="auth.logout",
        entity_type="user",
        entity_id=current_user.id,
        payload={"revoked": revoked},
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/password-reset/request",
    response_model=TokenDispatched,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Email a password reset link",
    dependencies=[_LOGIN_RATE_DEP],
)
async def request_password_reset(
    payload: PasswordResetRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    background_tasks: BackgroundTasks,
) -> TokenDispatched:
    """Always answers the same way so it cannot be used to discover accounts."""
    issued = await auth_service.request_password_reset(session, email=payload.email)
    if issued is not None:
        user, token, _ = issued
        subject, body = notification_service.build_password_reset_email(
            name=user.name,
            token=token,
            minutes=get_settings().password_reset_expire_minutes,
        )
        notification_service.schedule_email(
            background_tasks, recipients=[user.email], subject=subject, body=body
        )
    return TokenDispatched(detail=_RESET_REQUESTED)


@router.post(
    "/password-reset/confirm",
    response_model=UserRead,
    summary="Set a new password with a reset token",
    dependencies=[_LOGIN_RATE_DEP],
)
async def confirm_password_reset(
    payload: PasswordResetConfirm,
    request: Request,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> UserRead:
    try:
        user = await auth_service.reset_password(
            session, token=payload.token, new_password=payload.new_password
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    await audit_service.record_event(
        session,
        actor_id=user.id,
        action="auth.password_reset",
        entity_type="user",
        entity_id=user.id,
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return UserRead.model_validate(user)


@router.post(
    "/verify-email/request",
    response_model=TokenDispatched,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Resend the email verification link",
    dependencies=[_DEFAULT_RATE_DEP],
)
async def request_email_verification(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    background_tasks: BackgroundTasks,
) -> TokenDispatched:
    try:
        token, expires_at = await auth_service.request_email_verification(
            session, current_user
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    _schedule_verification_email(background_tasks, current_user, token)
    return TokenDispatched(
        detail="Verification email sent", expires_at=expires_at
    )


@router.post(
    "/verify-email/confirm",
    response_model=UserRead,
    summary="Confirm an email address",
)
async def confirm_email_verification(
    payload: EmailVerificationConfirm,
    request: Request,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> UserRead:
    try:
        user = await auth_service.verify_email(session, token=payload.token)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    await audit_service.record_event(
        session,
        actor_id=user.id,
        action="auth.verify_email",
        entity_type="user",
        entity_id=user.id,
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return UserRead.model_validate(user)
