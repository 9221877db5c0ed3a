import re
from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from .config import ADMIN_PHONES, JWT_ALGORITHM, JWT_SECRET

if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET environment variable is not set")

bearer_scheme = HTTPBearer(auto_error=False)


def normalize_phone(phone: str | None) -> str:
    return re.sub(r"[^\d+]", "", phone or "")


def issue_token(sub: str, roles: list[str], ttl: timedelta = timedelta(hours=12)) -> str:
    """Signs a token the way the OTP login provider does; used by ops scripts and tests."""
    claims = {
        "sub": sub,
        "roles": roles,
        "exp": datetime.now(timezone.utc) + ttl,
    }
    return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALGORITHM)


def get_current_user(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict:
    if not creds or creds.scheme.lower() != "bearer" or not creds.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Bearer token",
        )

    try:
        payload = jwt.decode(creds.credentials, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    request.state.user_sub = payload.get("sub")
    request.state.user_roles = payload.get("roles")
    return payload


def is_admin(payload: dict) -> bool:
    roles = payload.get("roles")
    if isinstance(roles, list) and "admin" in {str(r).lower() for r in roles}:
        return True
    # phone-number logins are admins when registered in ADMIN_PHONES
    return normalize_phone(payload.get("sub")) in ADMIN_PHONES


def require_admin(user: dict = Depends(get_current_user)) -> dict:
    if not is_admin(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access forbidden for this role",
        )
    return user
