"""RBAC utilities for FastAPI dependencies.

Provides `require_roles(*roles)` (user must hold every listed role) and
`require_any_role(*roles)` (user must hold at least one) factories that return
dependencies built on top of `get_current_user`.
"""

from typing import Callable
from fastapi import Depends, HTTPException, status
from .auth import get_current_user, User


def _forbidden() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Insufficient role",
    )


def require_roles(*required: str) -> Callable[[User], User]:
    """Create a dependency that enforces presence of given roles.

    Args:
        required: One or more role names the user must have.

    Returns:
        A FastAPI dependency callable that:
          - receives the current `User` (via `Depends(get_current_user)`)
          - raises 403 if the user's roles do not include all `required`
          - otherwise returns the `User`
    """
    def wrapper(user: User = Depends(get_current_user)) -> User:
        """Validate the current user's roles against the required set."""
        if not set(required).issubset(set(user.roles)):
            raise _forbidden()
        return user

    return wrapper


def require_any_role(*allowed: str) -> Callable[[User], User]:
    """Create a dependency that admits users holding any of `allowed`.

    Raises 403 when the user's roles and `allowed` are disjoint.
    """
    def wrapper(user: User = Depends(get_current_user)) -> User:
        if not set(allowed) & set(user.roles):
            raise _forbidden()
        return user

    return wrapper
