from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Tuple
from uuid import UUID

from jose import JWTError, jwt
from passlib.context import CryptContext

from erp_api.core.settings import get_app_settings

ACCESS = "access"
REFRESH = "refresh"

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# PUBLIC_INTERFACE
def verify_password(plain_password: str, hashed_password: str) -> bool:
    return _pwd_context.verify(plain_password, hashed_password)


# PUBLIC_INTERFACE
def get_password_hash(password: str) -> str:
    return _pwd_context.hash(password)


@dataclass(frozen=True)
class TokenClaims:
    """Claims of a verified token."""

    user_id: UUID
    tenant_id: UUID
    token_type: str
    roles: List[str] = field(default_factory=list)


def _encode(claims: Dict[str, Any], lifetime: timedelta) -> str:
    settings = get_app_settings()
    now = datetime.now(tz=timezone.utc)
    body = {**claims, "iat": now, "exp": now + lifetime}
    return jwt.encode(body, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


# PUBLIC_INTERFACE
def issue_token_pair(user_id: UUID, tenant_id: UUID, roles: List[str]) -> Tuple[str, str]:
    """
    Sign an (access, refresh) pair for a user of a tenant.

    The access token carries the role names for clients; route guards still
    resolve roles from the database on every request.
    """
    settings = get_app_settings()
    base = {"sub": str(user_id), "tenant_id": str(tenant_id)}
    access = _encode(
        {**base, "type": ACCESS, "roles": list(roles)},
        timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    refresh = _encode({**base, "type": REFRESH}, timedelta(minutes=settings.REFRESH_TOKEN_EXPIRE_MINUTES))
    return access, refresh


# PUBLIC_INTERFACE
def read_token(token: str, expected_type: str) -> TokenClaims:
    """
    Verify signature, expiry and type of a token and return its claims.

    Raises:
        JWTError: bad signature, expired, wrong type, or malformed subject/tenant.
    """
    settings = get_app_settings()
    payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    if payload.get("type") != expected_type:
        raise JWTError(f"Expected a {expected_type} token")
    try:
        return TokenClaims(
            user_id=UUID(str(payload["sub"])),
            tenant_id=UUID(str(payload["tenant_id"])),
            token_type=expected_type,
            roles=list(payload.get("roles") or []),
        )
    except (KeyError, ValueError) as exc:
        raise JWTError("Malformed token claims") from exc
