"""
Caller identity from bearer tokens.

The authenticated user id is ALWAYS taken from the verified JWT ``sub``
claim, never from query parameters or request bodies.

Configuration (environment variables):
- AUTH_JWT_SECRET:    HMAC signing secret (required for any identity)
- AUTH_JWT_ALGORITHM: Signing algorithm (default: "HS256")
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Request

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityConfig:
    jwt_secret: str
    algorithm: str = "HS256"

    @classmethod
    def from_env(cls) -> Optional["IdentityConfig"]:
        secret = os.getenv("AUTH_JWT_SECRET")
        if not secret:
            logger.warning("AUTH_JWT_SECRET not configured; all requests are anonymous")
            return None
        return cls(
            jwt_secret=secret,
            algorithm=os.getenv("AUTH_JWT_ALGORITHM", "HS256"),
        )


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def decode_user_id(token: str, config: IdentityConfig) -> Optional[str]:
    """
    Verify the token and return its subject.

    Any verification failure yields None (anonymous), never an exception.
    """
    try:
        payload = jwt.decode(token, config.jwt_secret, algorithms=[config.algorithm])
    except jwt.ExpiredSignatureError:
        logger.info("Expired bearer token")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid bearer token", extra={"error": str(e)})
        return None

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        return None
    return subject


def get_current_user_id(request: Request) -> Optional[str]:
    """
    FastAPI dependency: authenticated user id, or None when anonymous.

    Routes decide how to treat None so that "no identity" (401) stays
    distinct from "identity without access" (403).
    """
    token = extract_bearer_token(request.headers.get("authorization"))
    if token is None:
        return None
    config = IdentityConfig.from_env()
    if config is None:
        return None
    return decode_user_id(token, config)
