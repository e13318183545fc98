"""Bearer token verification for requests forwarded by the backend service."""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

import jwt
from fastapi import Depends, HTTPException, Request, status
from jwt import ExpiredSignatureError, InvalidTokenError

from copany.core.config import AuthSettings, get_settings
from copany.core.logger import get_logger

LOGGER = get_logger(__name__)


class AuthenticationError(Exception):
    """Raised when authentication or token validation fails."""


@dataclass(frozen=True, slots=True)
class AuthenticatedUser:
    """Representation of the authenticated principal."""

    user_id: str
    email: str | None = None
    role: str | None = None


class SecurityProvider:
    """Verify JWT access tokens and turn them into ``AuthenticatedUser`` values.

    Tokens are issued elsewhere (the hosted auth service); this class only
    checks the signature, expiry and, when configured, the audience.
    """

    def __init__(self, settings: AuthSettings) -> None:
        self._settings = settings

    def decode_token(self, token: str) -> AuthenticatedUser:
        """Decode a JWT and return the corresponding ``AuthenticatedUser``."""

        options: dict[str, object] = {"require": ["sub", "exp"]}
        kwargs: dict[str, object] = {}
        if self._settings.audience:
            kwargs["audience"] = self._settings.audience
        else:
            options["verify_aud"] = False

        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key,
                algorithms=[self._settings.algorithm],
                options=options,
                **kwargs,
            )
        except ExpiredSignatureError as exc:
            raise AuthenticationError("Token expired") from exc
        except InvalidTokenError as exc:
            raise AuthenticationError("Invalid token") from exc

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            raise AuthenticationError("Token payload missing subject claim")

        email = payload.get("email")
        role = payload.get("role")
        return AuthenticatedUser(
            user_id=subject,
            email=email if isinstance(email, str) else None,
            role=role if isinstance(role, str) else None,
        )


@lru_cache(maxsize=1)
def get_security_provider() -> SecurityProvider:
    """Return a cached security provider instance."""

    return SecurityProvider(get_settings().auth)


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_authenticated_user(
    request: Request,
    security: SecurityProvider = Depends(get_security_provider),
) -> AuthenticatedUser:
    """Resolve the caller from the ``Authorization: Bearer`` header."""

    token = _bearer_token(request)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Login required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return security.decode_token(token)
    except AuthenticationError as exc:
        LOGGER.info("Rejected access token: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


__all__ = [
    "AuthenticatedUser",
    "AuthenticationError",
    "SecurityProvider",
    "get_security_provider",
    "get_authenticated_user",
]
