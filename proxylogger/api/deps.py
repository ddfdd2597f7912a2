"""
proxylogger.api.deps — FastAPI dependency injection
=====================================================

The proxy authenticates with a JWT signed by the shared ``JWT_SECRET``
(HS256).  Its ``scope`` claim selects what it may do:

- ``ingest`` — report servers and player activity;
- ``admin``  — everything ``ingest`` can, plus reload and status.
"""

from __future__ import annotations

import os
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, Request, status
from jwt.exceptions import InvalidTokenError

from proxylogger.bot.core import ProxyLoggerBot

_WEAK_SECRETS = frozenset({
    "proxylogger-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"

SCOPE_INGEST = "ingest"
SCOPE_ADMIN = "admin"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


def get_bot(request: Request) -> ProxyLoggerBot:
    """The bot started by the app lifespan.  503 until it exists."""
    bot = getattr(request.app.state, "bot", None)
    if bot is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "Bot not started")
    return bot


def _decode_bearer(authorization: str | None) -> dict:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")


def get_ingest_client(
    authorization: Annotated[str | None, Header()] = None,
) -> dict:
    """Validate a proxy token with ingest (or admin) scope."""
    payload = _decode_bearer(authorization)
    if payload.get("scope") not in (SCOPE_INGEST, SCOPE_ADMIN):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Token lacks ingest scope")
    return payload


def get_current_admin(
    authorization: Annotated[str | None, Header()] = None,
) -> dict:
    """Validate an admin token.  Raises 401 if invalid, 403 if not admin."""
    payload = _decode_bearer(authorization)
    if payload.get("scope") != SCOPE_ADMIN:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not admin")
    return payload


IngestClient = Annotated[dict, Depends(get_ingest_client)]
Admin = Annotated[dict, Depends(get_current_admin)]
