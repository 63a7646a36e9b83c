from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from eyesonyou.config import settings
from eyesonyou.utils.time import utc_now

logger = logging.getLogger("eyesonyou.auth")

_bearer_scheme = HTTPBearer(auto_error=False)

# device: headset / scan source pushing geometry and speech
# caregiver: companion app changing toggles
ROLES = ("device", "caregiver")


def create_access_token(subject: str, role: str = "device") -> str:
    if role not in ROLES:
        raise ValueError(f"unknown role {role!r}")
    now = utc_now()
    exp = now + timedelta(minutes=settings.access_token_expire_minutes)
    payload: Dict[str, Any] = {
        "sub": subject,
        "role": role,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT token. Raises JWTError on failure."""
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
    )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_claims(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[Dict[str, Any]]:
    """Return the token claims, or None for anonymous callers.

    Outside production a missing or invalid token is tolerated so local
    demos and the mock scanner work without credentials.
    """
    if creds is None or creds.credentials == "":
        if settings.is_production:
            raise _unauthorized("Authentication required")
        return None

    try:
        return decode_token(creds.credentials)
    except JWTError as exc:
        if settings.is_production:
            raise _unauthorized(f"Invalid token: {exc}")
        logger.warning("Invalid JWT ignored in dev mode: %s", exc)
        return None


def require_role(*roles: str) -> Callable[..., Any]:
    """Dependency factory: the caller's role must be one of ``roles``."""

    async def _check(claims: Optional[Dict[str, Any]] = Depends(get_claims)) -> Optional[str]:
        if claims is None:
            return None  # anonymous is only possible outside production
        if claims.get("role") not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return claims.get("sub")

    return _check
