"""
Bearer token utilities.

WHAT: Issue and verify the JWTs that identify the acting user.

WHY: Accounts and sign-in live with the external identity provider. This
service only needs a verified user id (the ``sub`` claim) to attribute
writes and to run the organization membership check.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional
from jose import jwt, JWTError

from assetdesk.core.config import settings
from assetdesk.core.exceptions import (
    TokenExpiredError,
    TokenInvalidError,
)


def create_access_token(
    user_id: str,
    expires_delta: Optional[timedelta] = None,
    **claims: Any,
) -> str:
    """
    Create a signed access token for a user.

    Used by tests and by service-to-service callers; production tokens
    come from the identity provider signed with the same secret.

    Args:
        user_id: Identity-provider user id, stored as the ``sub`` claim
        expires_delta: Optional custom expiration time
        **claims: Extra claims (email, display name, ...)

    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.JWT_EXPIRATION_MINUTES))

    to_encode: Dict[str, Any] = dict(claims)
    to_encode.update(
        {
            "sub": user_id,
            "exp": expire,
            "iat": now,
            "nbf": now,
        }
    )

    return jwt.encode(
        to_encode,
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def verify_token(token: str) -> Dict[str, Any]:
    """
    Verify and decode a JWT token.

    Args:
        token: JWT token string

    Returns:
        Decoded token payload

    Raises:
        TokenExpiredError: If token has expired
        TokenInvalidError: If token is malformed or signature invalid
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )

    except jwt.ExpiredSignatureError:
        raise TokenExpiredError(message="Token has expired")

    except JWTError as e:
        raise TokenInvalidError(
            message="Invalid token",
            error=str(e),
        )
