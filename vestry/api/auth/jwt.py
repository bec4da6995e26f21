"""
JWT Token Verification

Tokens are issued by the authentication service; this module only
verifies them and exposes their claims.
"""

import logging
from typing import Optional

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from vestry.api.config import settings


logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ("sub", "tenant_id", "role")


def verify_token(token: str, token_type: str = "access") -> Optional[dict]:
    """
    Verify and decode a JWT token.

    Args:
        token: JWT token string
        token_type: Expected token type

    Returns:
        Decoded payload if valid, None otherwise
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        logger.info("Rejected expired token")
        return None
    except InvalidTokenError:
        logger.info("Rejected invalid token")
        return None

    # Verify token type
    if payload.get("type") != token_type:
        return None

    if any(not payload.get(claim) for claim in REQUIRED_CLAIMS):
        logger.warning("Token is missing required claims")
        return None

    return payload
