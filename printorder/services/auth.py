"""Bearer JWT helpers. Tokens are issued by the account service; we only verify them."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from ..settings import settings

_bearer = HTTPBearer(auto_error=False)


def create_access_token(
    subject: str,
    email: Optional[str] = None,
    expires_minutes: Optional[int] = None,
    roles: Optional[List[str]] = None,
) -> str:
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.access_token_expire_minutes
    )
    payload = {"sub": subject, "exp": expire}
    if email:
        payload["email"] = email
    if roles:
        payload["roles"] = roles
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[str]:
    """Return the owner id (`sub`, or the legacy `userId` claim) or None."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    owner = payload.get("sub") or payload.get("userId")
    return str(owner) if owner else None


def require_owner(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> str:
    """FastAPI dependency: the caller's owner id, or 401."""
    owner = decode_access_token(creds.credentials) if creds else None
    if not owner:
        raise HTTPException(
            status_code=401,
            detail="Unauthorized. Please login.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return owner
