"""
Pluggable admin authentication.

Call sites depend on the AdminAuthenticator capability set (verify a
credential, issue a session, validate a session), so the shared-password
cookie can be swapped for a signed session without touching routes.
"""

from __future__ import annotations

import hmac
from datetime import datetime, timedelta, timezone
from typing import Annotated, Protocol, runtime_checkable

import jwt
from fastapi import Depends, Request, Response

from betterphone.config import Settings, get_settings
from betterphone.shared.exceptions import UnauthorizedError
from betterphone.shared.logging import get_logger

logger = get_logger(__name__)

ADMIN_COOKIE_NAME = "admin_auth"
SHARED_SESSION_VALUE = "authenticated"


@runtime_checkable
class AdminAuthenticator(Protocol):
    """Capabilities every admin authentication scheme provides."""

    def verify_credential(self, password: str) -> bool:
        ...

    def issue_session(self) -> str:
        ...

    def validate_session(self, token: str | None) -> bool:
        ...


class SharedPasswordAuthenticator:
    """Single shared password; the session is a constant cookie value."""

    def __init__(self, password: str) -> None:
        self._password = password

    def verify_credential(self, password: str) -> bool:
        if not self._password or not password:
            return False
        return hmac.compare_digest(password.encode("utf-8"), self._password.encode("utf-8"))

    def issue_session(self) -> str:
        return SHARED_SESSION_VALUE

    def validate_session(self, token: str | None) -> bool:
        return token == SHARED_SESSION_VALUE


class SignedSessionAuthenticator(SharedPasswordAuthenticator):
    """Shared password, but sessions are expiring HS256 tokens."""

    algorithm = "HS256"

    def __init__(self, password: str, secret: str, lifetime: timedelta) -> None:
        super().__init__(password)
        self._secret = secret
        self._lifetime = lifetime

    def issue_session(self) -> str:
        now = datetime.now(timezone.utc)
        payload = {"sub": "admin", "iat": now, "exp": now + self._lifetime, "type": "admin_session"}
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def validate_session(self, token: str | None) -> bool:
        if not token:
            return False
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            logger.info("Admin session expired")
            return False
        except jwt.InvalidTokenError:
            return False
        return payload.get("type") == "admin_session"


def create_authenticator(settings: Settings | None = None) -> AdminAuthenticator:
    settings = settings or get_settings()
    if settings.admin_auth_scheme == "signed":
        return SignedSessionAuthenticator(
            password=settings.admin_password,
            secret=settings.admin_session_secret,
            lifetime=timedelta(days=settings.admin_session_days),
        )
    return SharedPasswordAuthenticator(settings.admin_password)


def get_authenticator() -> AdminAuthenticator:
    """FastAPI dependency for the configured authenticator."""
    return create_authenticator()


def set_session_cookie(response: Response, token: str, settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    response.set_cookie(
        key=ADMIN_COOKIE_NAME,
        value=token,
        max_age=settings.admin_session_days * 24 * 60 * 60,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=ADMIN_COOKIE_NAME, path="/")


class RequireAdmin:
    """Dependency that re-checks the admin cookie on every admin route."""

    async def __call__(
        self,
        request: Request,
        authenticator: Annotated[AdminAuthenticator, Depends(get_authenticator)],
    ) -> None:
        token = request.cookies.get(ADMIN_COOKIE_NAME)
        if not authenticator.validate_session(token):
            logger.warning(
                "Unauthorized admin request",
                extra={
                    "endpoint": str(request.url.path),
                    "method": request.method,
                    "has_cookie": token is not None,
                },
            )
            raise UnauthorizedError()


require_admin = RequireAdmin()
