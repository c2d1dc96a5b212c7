"""JWT handling for authenticated subjects.

Tokens are issued by the identity service; this module only needs to
verify them and extract the subject. ``create_access_token`` exists for
tooling and tests.
"""

import secrets
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from erp_access.config import settings
from erp_access.core.auth.schemas import TokenData
from erp_access.core.constants import ACCESS_TOKEN_JTI_LENGTH


def create_access_token(
    user_id: UUID,
    tenant_id: UUID | None = None,
    expires_delta: timedelta | None = None,
    additional_claims: dict[str, Any] | None = None,
) -> str:
    """Create a short-lived JWT access token.

    Args:
        user_id: The subject's UUID
        tenant_id: The tenant's UUID, if any
        expires_delta: Optional custom expiration time
        additional_claims: Optional extra claims to include

    Returns:
        Encoded JWT access token
    """
    now = datetime.now(UTC)
    expire = now + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )

    to_encode: dict[str, Any] = {
        "sub": str(user_id),
        "exp": expire,
        "type": "access",
        "iat": now,
        "jti": secrets.token_urlsafe(ACCESS_TOKEN_JTI_LENGTH),
    }
    if tenant_id is not None:
        to_encode["tenant_id"] = str(tenant_id)

    if additional_claims:
        to_encode.update(additional_claims)

    return jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_token(token: str) -> TokenData | None:
    """Decode and validate a JWT token.

    Args:
        token: The JWT token to decode

    Returns:
        TokenData if valid, None if invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )

        user_id = payload.get("sub")
        tenant_id = payload.get("tenant_id")
        exp = payload.get("exp")

        if not user_id or exp is None:
            return None

        return TokenData(
            user_id=UUID(user_id),
            tenant_id=UUID(tenant_id) if tenant_id else None,
            exp=datetime.fromtimestamp(exp, tz=UTC),
            type=payload.get("type", "access"),
            jti=payload.get("jti"),
        )

    except (JWTError, ValueError):
        return None
