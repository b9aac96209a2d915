"""
Tests for the pluggable admin authenticators.
"""

from datetime import timedelta

import jwt
import pytest
from fastapi import status
from httpx import AsyncClient

from betterphone.admin.auth import (
    AdminAuthenticator,
    SharedPasswordAuthenticator,
    SignedSessionAuthenticator,
    create_authenticator,
)
from betterphone.config import Settings

SECRET = "unit-test-secret"


class TestSharedPasswordAuthenticator:
    def test_verify_credential(self) -> None:
        auth = SharedPasswordAuthenticator("s3cret")

        assert auth.verify_credential("s3cret")
        assert not auth.verify_credential("S3CRET")
        assert not auth.verify_credential("")

    def test_empty_configured_password_never_matches(self) -> None:
        assert not SharedPasswordAuthenticator("").verify_credential("")

    def test_session_is_constant_cookie_value(self) -> None:
        auth = SharedPasswordAuthenticator("s3cret")

        assert auth.issue_session() == "authenticated"
        assert auth.validate_session("authenticated")
        assert not auth.validate_session("true")
        assert not auth.validate_session(None)


class TestSignedSessionAuthenticator:
    def test_round_trip(self) -> None:
        auth = SignedSessionAuthenticator("pw", SECRET, timedelta(days=7))
        token = auth.issue_session()

        assert token != "authenticated"
        assert auth.validate_session(token)

    def test_rejects_expired_token(self) -> None:
        auth = SignedSessionAuthenticator("pw", SECRET, timedelta(seconds=-10))
        assert not auth.validate_session(auth.issue_session())

    def test_rejects_foreign_signature(self) -> None:
        issuer = SignedSessionAuthenticator("pw", "other-secret", timedelta(days=1))
        verifier = SignedSessionAuthenticator("pw", SECRET, timedelta(days=1))
        assert not verifier.validate_session(issuer.issue_session())

    def test_rejects_other_token_types(self) -> None:
        token = jwt.encode({"sub": "admin", "type": "access"}, SECRET, algorithm="HS256")
        auth = SignedSessionAuthenticator("pw", SECRET, timedelta(days=1))

        assert not auth.validate_session(token)
        assert not auth.validate_session("authenticated")
        assert not auth.validate_session(None)


class TestFactory:
    def test_scheme_selection(self) -> None:
        shared = create_authenticator(Settings(admin_auth_scheme="shared_password"))
        signed = create_authenticator(Settings(admin_auth_scheme="signed", admin_session_secret=SECRET))

        assert type(shared) is SharedPasswordAuthenticator
        assert isinstance(signed, SignedSessionAuthenticator)
        assert isinstance(signed, AdminAuthenticator)


class TestSignedSchemeOverHttp:
    @pytest.mark.asyncio
    async def test_login_issues_signed_cookie(
        self,
        async_client: AsyncClient,
        admin_password: str,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("ADMIN_AUTH_SCHEME", "signed")
        monkeypatch.setenv("ADMIN_SESSION_SECRET", SECRET)

        login = await async_client.post("/api/admin/login", json={"password": admin_password})
        token = login.headers["set-cookie"].split(";")[0].split("=", 1)[1]

        assert token != "authenticated"
        ok = await async_client.get("/api/admin/tags", headers={"Cookie": f"admin_auth={token}"})
        assert ok.status_code == status.HTTP_200_OK
        shared = await async_client.get("/api/admin/tags", headers={"Cookie": "admin_auth=authenticated"})
        assert shared.status_code == status.HTTP_401_UNAUTHORIZED
