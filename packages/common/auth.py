"""Auth helpers for FastAPI endpoints.

Provides:
- `User` Pydantic model for JWT subject
- `verify_jwt` to decode/validate signed JWTs
- `get_current_user` FastAPI dependency using HTTP Bearer auth
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
from pydantic import BaseModel
from .config import get_settings

security = HTTPBearer(auto_error=False)

ROLE_ADMIN = "admin"
ROLE_TEACHER = "teacher"
ROLE_STUDENT = "student"


class User(BaseModel):
    """Authenticated user extracted from a validated JWT."""
    sub: str
    email: str | None = None
    roles: list[str] = []

    def has_role(self, role: str) -> bool:
        return role in self.roles


def verify_jwt(token: str) -> User:
    """Decode and validate a JWT and return a `User`.

    Validates signature, audience, issuer and expiration using settings.
    A single `role` claim is accepted as well as a `roles` list.
    Raises HTTP 401 on any validation failure.

    Args:
        token: Bearer token string (JWT).

    Returns:
        User: Parsed user info from token claims.
    """
    s = get_settings()
    try:
        payload = jwt.decode(
            token,
            s.JWT_PUBLIC_KEY,
            algorithms=s.JWT_ALGORITHMS,
            audience=s.OIDC_AUDIENCE,
            issuer=s.OIDC_ISSUER,
            options={"verify_exp": True, "require": ["sub", "exp"]},
        )
    except jwt.PyJWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )
    roles = list(payload.get("roles") or [])
    if payload.get("role") and payload["role"] not in roles:
        roles.append(payload["role"])
    return User(sub=str(payload["sub"]), email=payload.get("email"), roles=roles)


def get_current_user(creds: HTTPAuthorizationCredentials = Depends(security)) -> User:
    """FastAPI dependency to extract the current user from Authorization header.

    Args:
        creds: Parsed HTTP Bearer credentials injected by FastAPI.

    Returns:
        User: The authenticated user.

    Raises:
        HTTPException: 401 if credentials are missing or token is invalid.
    """
    if not creds:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing credentials",
        )
    return verify_jwt(creds.credentials)
