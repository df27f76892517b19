"""Access token helpers shared by HTTP and websocket authentication."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from clinic_api.config import get_settings
from clinic_api.domain.entities import Principal, Role


def create_access_token(
    *,
    user_id: str,
    tenant_id: str,
    role: Role | str,
    branch_ids: Iterable[str] = (),
    email: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Sign an access token carrying the claims :func:`decode_principal` reads."""

    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims = {
        "sub": user_id,
        "tenant_id": tenant_id,
        "role": Role(role).value,
        "branch_ids": list(branch_ids),
        "email": email,
        "exp": expire,
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise ValueError("Could not validate credentials") from exc


def decode_principal(token: str) -> Principal:
    """Verify ``token`` and build the :class:`Principal` it describes.

    Raises ``ValueError`` for bad signatures, expired tokens and missing claims.
    """

    payload = decode_access_token(token)
    user_id = payload.get("sub")
    tenant_id = payload.get("tenant_id")
    role = payload.get("role")
    if not user_id or not tenant_id or not role:
        raise ValueError("Token is missing required claims")
    try:
        parsed_role = Role(role)
    except ValueError as exc:
        raise ValueError(f"Unknown role '{role}'") from exc

    branch_ids = payload.get("branch_ids") or []
    if not isinstance(branch_ids, list):
        raise ValueError("branch_ids claim must be a list")

    return Principal(
        user_id=str(user_id),
        tenant_id=str(tenant_id),
        role=parsed_role,
        branch_ids=tuple(str(branch_id) for branch_id in branch_ids),
        email=payload.get("email"),
    )


__all__ = ["create_access_token", "decode_access_token", "decode_principal"]
