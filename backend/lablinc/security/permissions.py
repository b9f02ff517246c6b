"""Role helpers for explicit authorization checks."""

from __future__ import annotations

from fastapi import HTTPException, status

from lablinc.models.user import User, UserRole


def require_roles(user: User, allowed: set[UserRole]) -> None:
    """Raise HTTP 403 if a user is not a member of the allowed role set."""

    if user.role not in allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )


def http_error_for(exc: Exception) -> HTTPException:
    """Translate a service-layer exception into the matching HTTP error."""

    if isinstance(exc, PermissionError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, LookupError):
        code = status.HTTP_404_NOT_FOUND
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(exc))


__all__ = ["http_error_for", "require_roles"]
