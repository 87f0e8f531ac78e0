"""HTTP client for the credential service.

Talks JSON to the ``/auth`` routes of the credential service and folds
every outcome, including network failures and unreadable responses, into
an :class:`AuthResult`. No exception raised by httpx ever leaves this
module.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import ValidationError

from termfolio.auth.errors import MESSAGES, TOKEN_INVALID_CODES, CredentialError
from termfolio.auth.validation import validate_login_request, validate_signup_request
from termfolio.domain.models import AuthResult, ErrorKind, FieldError, UserRef

logger = logging.getLogger(__name__)

SIGNUP_FIELDS = ("username", "email", "password", "confirmPassword")
LOGIN_FIELDS = ("emailOrUsername", "password")


class CredentialService:
    """Async client for signup, login, logout, identity and token refresh.

    The underlying ``httpx.AsyncClient`` is created on first use, or
    explicitly with :meth:`connect`. Use as an async context manager to
    make sure it is closed::

        async with CredentialService("http://localhost:3001/api") as svc:
            result = await svc.login({"emailOrUsername": "bob", "password": "..."})
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3001/api",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def connect(self) -> None:
        """Create the HTTP client. Safe to call more than once."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
            logger.debug("Credential client created for %s", self._base_url)

    async def disconnect(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.debug("Credential client closed")

    async def __aenter__(self) -> CredentialService:
        await self.connect()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.disconnect()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def signup(self, data: Mapping[str, str]) -> AuthResult:
        """Create an account. Validates locally before any request."""
        errors = validate_signup_request(data)
        if errors:
            return _validation_result(errors)
        payload = {name: data.get(name, "") for name in SIGNUP_FIELDS}
        try:
            body = await self._request("POST", "/auth/signup", json=payload)
            return self._success(body, default_message="Account created successfully")
        except CredentialError as e:
            logger.info("Signup failed: %s (%s)", e.message, e.kind.value)
            return e.to_result()

    async def login(self, data: Mapping[str, str]) -> AuthResult:
        errors = validate_login_request(data)
        if errors:
            return _validation_result(errors)
        payload = {name: data.get(name, "") for name in LOGIN_FIELDS}
        try:
            body = await self._request("POST", "/auth/login", json=payload)
            return self._success(body, default_message="Login successful")
        except CredentialError as e:
            logger.info("Login failed: %s (%s)", e.message, e.kind.value)
            return e.to_result()

    async def logout(self, token: str | None) -> AuthResult:
        """Ask the server to revoke ``token``."""
        if not token:
            return AuthResult(
                success=False,
                message=MESSAGES["auth_required"],
                error_kind=ErrorKind.AUTH_FAILURE,
                token_invalid=True,
            )
        try:
            body = await self._request(
                "POST", "/auth/logout", token=token, token_call=True
            )
        except CredentialError as e:
            logger.info("Logout request failed: %s", e.message)
            return e.to_result()
        return AuthResult(
            success=True, message=str(body.get("message") or "Logged out successfully")
        )

    async def me(self, token: str) -> AuthResult:
        """Fetch the identity attached to ``token``."""
        try:
            body = await self._request("GET", "/auth/me", token=token, token_call=True)
            user = _parse_user(body.get("user"))
            if user is None:
                raise CredentialError(MESSAGES["malformed"], ErrorKind.SERVER_FAULT)
        except CredentialError as e:
            logger.info("Identity lookup failed: %s", e.message)
            return e.to_result()
        return AuthResult(success=True, message=str(body.get("message") or ""), user=user)

    async def refresh(self, refresh_token: str) -> AuthResult:
        """Exchange a refresh token for a new access token."""
        try:
            body = await self._request(
                "POST",
                "/auth/refresh",
                json={"refreshToken": refresh_token},
                token_call=True,
            )
            result = self._success(body, default_message="Token refreshed")
            if not result.token:
                raise CredentialError(MESSAGES["malformed"], ErrorKind.SERVER_FAULT)
        except CredentialError as e:
            logger.info("Token refresh failed: %s", e.message)
            return e.to_result()
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        json: dict | None = None,
        token: str | None = None,
        token_call: bool = False,
    ) -> dict[str, Any]:
        """Send one request and return the decoded JSON body.

        Raises:
            CredentialError: For any non-2xx status, transport failure or
                unreadable body.
        """
        await self.connect()
        assert self._client is not None
        headers = {"Authorization": f"Bearer {token}"} if token else None
        try:
            resp = await self._client.request(method, path, json=json, headers=headers)
        except httpx.TimeoutException as e:
            raise CredentialError(MESSAGES["timeout"], ErrorKind.TRANSPORT) from e
        except httpx.HTTPError as e:
            raise CredentialError(MESSAGES["connection"], ErrorKind.TRANSPORT) from e

        try:
            body = resp.json()
        except ValueError:
            body = None

        if resp.is_success:
            if not isinstance(body, dict):
                raise CredentialError(
                    MESSAGES["malformed"], ErrorKind.SERVER_FAULT, status=resp.status_code
                )
            return body

        if not isinstance(body, dict):
            body = {"message": resp.text}
        raise _error_for_status(resp.status_code, body, token_call)

    @staticmethod
    def _success(body: dict[str, Any], default_message: str) -> AuthResult:
        if body.get("success") is False:
            raise CredentialError(
                str(body.get("message") or MESSAGES["server"]), ErrorKind.SERVER_FAULT
            )
        token = body.get("token")
        refresh_token = body.get("refreshToken")
        return AuthResult(
            success=True,
            message=str(body.get("message") or default_message),
            user=_parse_user(body.get("user")),
            token=token if isinstance(token, str) and token else None,
            refresh_token=(
                refresh_token if isinstance(refresh_token, str) and refresh_token else None
            ),
        )


def _parse_user(raw: Any) -> UserRef | None:
    if raw is None:
        return None
    try:
        return UserRef.model_validate(raw)
    except ValidationError as e:
        raise CredentialError(MESSAGES["malformed"], ErrorKind.SERVER_FAULT) from e


def _parse_field_errors(raw: Any) -> list[FieldError]:
    if not isinstance(raw, list):
        return []
    errors = []
    for item in raw:
        if isinstance(item, dict) and item.get("message"):
            errors.append(
                FieldError(field=str(item.get("field") or ""), message=str(item["message"]))
            )
    return errors


def _validation_result(errors: list[FieldError]) -> AuthResult:
    return AuthResult(
        success=False,
        message=errors[0].message,
        field_errors=errors,
        error_kind=ErrorKind.VALIDATION,
    )


def _error_for_status(status: int, body: dict[str, Any], token_call: bool) -> CredentialError:
    """Map a non-2xx response onto the error taxonomy."""
    code = str(body.get("code") or "")
    server_message = str(body.get("message") or "")
    field_errors = _parse_field_errors(body.get("errors"))

    if status == 400:
        message = field_errors[0].message if field_errors else (
            server_message or MESSAGES["validation"]
        )
        return CredentialError(
            message, ErrorKind.VALIDATION, status, code, field_errors=field_errors
        )

    if status == 401:
        if token_call or code in TOKEN_INVALID_CODES:
            key = "session_expired" if code == "TOKEN_EXPIRED" else "invalid_token"
            return CredentialError(
                MESSAGES[key], ErrorKind.AUTH_FAILURE, status, code, token_invalid=True
            )
        return CredentialError(
            MESSAGES["invalid_credentials"], ErrorKind.AUTH_FAILURE, status, code
        )

    if status == 403:
        return CredentialError(MESSAGES["access_denied"], ErrorKind.AUTH_FAILURE, status, code)

    if status == 404:
        return CredentialError(MESSAGES["not_found"], ErrorKind.SERVER_FAULT, status, code)

    if status == 409:
        lowered = server_message.lower()
        if code == "USERNAME_EXISTS" or (code != "EMAIL_EXISTS" and "username" in lowered):
            field, message = "username", MESSAGES["username_exists"]
        elif code == "EMAIL_EXISTS" or "email" in lowered:
            field, message = "email", MESSAGES["email_exists"]
        else:
            field, message = "", server_message or MESSAGES["server"]
        if not field_errors and field:
            field_errors = [FieldError(field=field, message=message)]
        return CredentialError(
            message, ErrorKind.CONFLICT, status, code, field_errors=field_errors
        )

    if status == 429:
        return CredentialError(MESSAGES["rate_limited"], ErrorKind.SERVER_FAULT, status, code)

    if status == 503:
        return CredentialError(MESSAGES["unavailable"], ErrorKind.SERVER_FAULT, status, code)

    return CredentialError(MESSAGES["server"], ErrorKind.SERVER_FAULT, status, code)
