"""Tests for the CredentialService HTTP client."""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from termfolio.auth.client import CredentialService
from termfolio.domain.models import ErrorKind, UserRef

USER = {"id": "u1", "username": "bob", "email": "bob@example.com"}
SIGNUP = {
    "username": "bob",
    "email": "bob@example.com",
    "password": "Aa1!aaaa",
    "confirmPassword": "Aa1!aaaa",
}
LOGIN = {"emailOrUsername": "bob", "password": "hunter22"}


def service_for(handler: Callable[[httpx.Request], httpx.Response]) -> CredentialService:
    return CredentialService(
        base_url="http://auth.test/api", transport=httpx.MockTransport(handler)
    )


def respond(status: int, body: object) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(status, json=body)


class TestCredentialServiceInit:
    def test_defaults(self) -> None:
        svc = CredentialService()
        assert svc.base_url == "http://localhost:3001/api"

    def test_trailing_slash_stripped(self) -> None:
        assert CredentialService("http://auth.test/api/").base_url == "http://auth.test/api"

    @pytest.mark.asyncio
    async def test_context_manager(self) -> None:
        async with service_for(respond(200, {})) as svc:
            assert svc._client is not None
        assert svc._client is None


class TestSignup:
    @pytest.mark.asyncio
    async def test_success(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                201,
                json={"success": True, "user": USER, "token": "t", "refreshToken": "r"},
            )

        async with service_for(handler) as svc:
            result = await svc.signup(SIGNUP)
        assert result.success is True
        assert result.message == "Account created successfully"
        assert result.user == UserRef(**USER)
        assert result.token == "t"
        assert result.refresh_token == "r"
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/api/auth/signup"
        assert json.loads(seen[0].content) == SIGNUP

    @pytest.mark.asyncio
    async def test_local_validation_skips_network(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        async with service_for(handler) as svc:
            result = await svc.signup({**SIGNUP, "confirmPassword": "different"})
        assert calls == []
        assert result.error_kind is ErrorKind.VALIDATION
        assert result.message == "Passwords do not match"
        assert result.field_errors[0].field == "confirmPassword"

    @pytest.mark.asyncio
    async def test_server_validation_error(self) -> None:
        body = {
            "success": False,
            "message": "Validation failed",
            "code": "VALIDATION_ERROR",
            "errors": [
                {"field": "password", "message": "Password must contain at least one number"},
                {"field": "password", "message": "Password cannot contain only letters"},
            ],
        }
        async with service_for(respond(400, body)) as svc:
            result = await svc.signup(SIGNUP)
        assert result.error_kind is ErrorKind.VALIDATION
        assert result.message == "Password must contain at least one number"
        assert len(result.field_errors) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "code,field,message",
        [
            ("USERNAME_EXISTS", "username", "Username already exists"),
            ("EMAIL_EXISTS", "email", "Email already registered"),
        ],
    )
    async def test_conflict(self, code: str, field: str, message: str) -> None:
        body = {"success": False, "message": "exists", "code": code}
        async with service_for(respond(409, body)) as svc:
            result = await svc.signup(SIGNUP)
        assert result.error_kind is ErrorKind.CONFLICT
        assert result.message == message
        assert result.field_errors[0].field == field


class TestLogin:
    @pytest.mark.asyncio
    async def test_success(self) -> None:
        body = {"success": True, "message": "Login successful", "user": USER, "token": "t"}
        async with service_for(respond(200, body)) as svc:
            result = await svc.login(LOGIN)
        assert result.success is True
        assert result.user.username == "bob"
        assert result.refresh_token is None

    @pytest.mark.asyncio
    async def test_invalid_credentials(self) -> None:
        body = {"success": False, "message": "Invalid credentials", "code": "INVALID_CREDENTIALS"}
        async with service_for(respond(401, body)) as svc:
            result = await svc.login(LOGIN)
        assert result.error_kind is ErrorKind.AUTH_FAILURE
        assert result.message == "Invalid credentials"
        assert result.token_invalid is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,message",
        [
            (403, "Access denied"),
            (404, "Service endpoint not found"),
            (429, "Too many requests. Please wait a moment and try again."),
            (500, "Server error. Please try again later."),
            (503, "Service temporarily unavailable. Please try again later."),
        ],
    )
    async def test_status_messages(self, status: int, message: str) -> None:
        async with service_for(respond(status, {"success": False})) as svc:
            result = await svc.login(LOGIN)
        assert result.success is False
        assert result.message == message

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        async with service_for(handler) as svc:
            result = await svc.login(LOGIN)
        assert result.error_kind is ErrorKind.TRANSPORT
        assert result.message == "Connection timed out. Please check your internet connection."

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with service_for(handler) as svc:
            result = await svc.login(LOGIN)
        assert result.error_kind is ErrorKind.TRANSPORT
        assert result.message == "Connection error. Please try again."

    @pytest.mark.asyncio
    async def test_non_json_success_body(self) -> None:
        async with service_for(lambda request: httpx.Response(200, text="<html>")) as svc:
            result = await svc.login(LOGIN)
        assert result.error_kind is ErrorKind.SERVER_FAULT
        assert result.message == "Unexpected response from server"

    @pytest.mark.asyncio
    async def test_malformed_user(self) -> None:
        body = {"success": True, "user": {"id": "1"}, "token": "t"}
        async with service_for(respond(200, body)) as svc:
            result = await svc.login(LOGIN)
        assert result.error_kind is ErrorKind.SERVER_FAULT

    @pytest.mark.asyncio
    async def test_success_false_in_2xx(self) -> None:
        async with service_for(respond(200, {"success": False, "message": "Nope"})) as svc:
            result = await svc.login(LOGIN)
        assert result.success is False
        assert result.message == "Nope"


class TestTokenCalls:
    @pytest.mark.asyncio
    async def test_logout_sends_bearer_token(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "message": "Logged out successfully"})

        async with service_for(handler) as svc:
            result = await svc.logout("tok")
        assert result.success is True
        assert seen[0].headers["Authorization"] == "Bearer tok"

    @pytest.mark.asyncio
    async def test_logout_without_token(self) -> None:
        async with service_for(respond(200, {})) as svc:
            result = await svc.logout(None)
        assert result.success is False
        assert result.token_invalid is True

    @pytest.mark.asyncio
    async def test_me(self) -> None:
        async with service_for(respond(200, {"success": True, "user": USER})) as svc:
            result = await svc.me("tok")
        assert result.success is True
        assert result.user.username == "bob"

    @pytest.mark.asyncio
    async def test_me_without_user_is_malformed(self) -> None:
        async with service_for(respond(200, {"success": True})) as svc:
            result = await svc.me("tok")
        assert result.error_kind is ErrorKind.SERVER_FAULT

    @pytest.mark.asyncio
    async def test_expired_token(self) -> None:
        body = {"success": False, "message": "Token has expired", "code": "TOKEN_EXPIRED"}
        async with service_for(respond(401, body)) as svc:
            result = await svc.me("tok")
        assert result.token_invalid is True
        assert result.error_kind is ErrorKind.AUTH_FAILURE
        assert result.message == "Your session has expired. Please log in again."

    @pytest.mark.asyncio
    async def test_refresh(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "token": "new", "user": USER})

        async with service_for(handler) as svc:
            result = await svc.refresh("r")
        assert result.token == "new"
        assert json.loads(seen[0].content) == {"refreshToken": "r"}

    @pytest.mark.asyncio
    async def test_refresh_failure(self) -> None:
        body = {"success": False, "message": "Token refresh failed", "code": "REFRESH_FAILED"}
        async with service_for(respond(401, body)) as svc:
            result = await svc.refresh("r")
        assert result.token_invalid is True
        assert result.message == "Invalid authentication token. Please log in again."

    @pytest.mark.asyncio
    async def test_refresh_without_token_is_malformed(self) -> None:
        async with service_for(respond(200, {"success": True})) as svc:
            result = await svc.refresh("r")
        assert result.error_kind is ErrorKind.SERVER_FAULT
