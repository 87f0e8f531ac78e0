"""FastAPI application for the reference credential service.

Serves signup, login, logout, identity and token refresh under
``/api/auth``. Every error response has the shape
``{"success": false, "message": ..., "code": ..., "errors": [...]}``,
which is what :class:`termfolio.auth.client.CredentialService` expects.
"""

from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import uvicorn
from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from termfolio.config.settings import Settings, load_settings
from termfolio.server.passwords import (
    BcryptHasher,
    PasswordHasher,
    get_hasher,
    validate_password_strength,
)
from termfolio.server.tokens import REFRESH, TokenError, TokenIssuer
from termfolio.server.users import InMemoryUserRepository, UserExistsError, UserRecord

logger = logging.getLogger(__name__)

API_PREFIX = "/api/auth"

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]{3,50}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_EXISTS_MESSAGES = {
    "username": "Username already exists",
    "email": "Email already registered",
}


class SignupRequest(BaseModel):
    username: str = Field(default="")
    email: str = Field(default="")
    password: str = Field(default="")
    confirmPassword: str = Field(default="")


class LoginRequest(BaseModel):
    emailOrUsername: str = Field(default="")
    password: str = Field(default="")


class RefreshRequest(BaseModel):
    refreshToken: str = Field(default="")


class ServiceStatus(BaseModel):
    status: str = "ok"
    users: int = 0


class ApiError(Exception):
    """An error response with a status code, message and optional field errors."""

    def __init__(
        self,
        status: int,
        message: str,
        code: str,
        errors: list[dict[str, str]] | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.message = message
        self.code = code
        self.errors = errors or []

    def body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "message": self.message, "code": self.code}
        if self.errors:
            body["errors"] = self.errors
        return body


def validate_signup(data: SignupRequest) -> list[dict[str, str]]:
    """Server-side signup rules, one entry per failing field."""
    errors = []
    if not USERNAME_PATTERN.match(data.username.strip()):
        errors.append({
            "field": "username",
            "message": "Username must be 3-50 characters and contain only "
                       "letters, numbers, and underscores",
        })
    if not EMAIL_PATTERN.match(data.email.strip()):
        errors.append({"field": "email", "message": "Please provide a valid email address"})
    for message in validate_password_strength(data.password):
        errors.append({"field": "password", "message": message})
    if not data.confirmPassword:
        errors.append({"field": "confirmPassword", "message": "Password confirmation is required"})
    elif data.confirmPassword != data.password:
        errors.append({"field": "confirmPassword", "message": "Passwords do not match"})
    return errors


def create_app(
    issuer: TokenIssuer,
    users: InMemoryUserRepository | None = None,
    hasher: PasswordHasher | None = None,
) -> FastAPI:
    """Create and configure the credential service application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Credential service started")
        yield
        logger.info("Credential service stopped")

    app = FastAPI(
        title="termfolio Credential Service",
        description="Signup, login and token management for the termfolio terminal",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.issuer = issuer
    app.state.users = users if users is not None else InMemoryUserRepository()
    app.state.hasher = hasher if hasher is not None else BcryptHasher()

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status, content=exc.body())

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            {"field": str(err["loc"][-1]) if err.get("loc") else "", "message": err["msg"]}
            for err in exc.errors()
        ]
        error = ApiError(400, "Validation failed", "VALIDATION_ERROR", errors)
        return JSONResponse(status_code=400, content=error.body())

    def tokens_for(user: UserRecord) -> tuple[str, str]:
        return app.state.issuer.issue_pair(user.id, user.username, user.email)

    def bearer_claims(authorization: str | None) -> dict[str, Any]:
        token = _extract_token(authorization)
        if not token:
            raise ApiError(401, "Access token required", "TOKEN_REQUIRED")
        try:
            return app.state.issuer.verify(token)
        except TokenError as e:
            raise ApiError(401, e.message, e.code) from e

    @app.get("/health")
    async def health_check() -> ServiceStatus:
        return ServiceStatus(status="ok", users=len(app.state.users))

    @app.post(f"{API_PREFIX}/signup", status_code=201)
    async def signup(request: SignupRequest) -> dict[str, Any]:
        errors = validate_signup(request)
        if errors:
            raise ApiError(400, "Validation failed", "VALIDATION_ERROR", errors)
        password_hash = await app.state.hasher.hash(request.password)
        try:
            user = await app.state.users.create(
                request.username.strip(), request.email, password_hash
            )
        except UserExistsError as e:
            message = _EXISTS_MESSAGES[e.field]
            raise ApiError(
                409,
                message,
                f"{e.field.upper()}_EXISTS",
                [{"field": e.field, "message": message}],
            ) from e
        token, refresh_token = tokens_for(user)
        logger.info("Created account %s", user.username)
        return {
            "success": True,
            "message": "Account created successfully",
            "user": user.public(),
            "token": token,
            "refreshToken": refresh_token,
        }

    @app.post(f"{API_PREFIX}/login")
    async def login(request: LoginRequest) -> dict[str, Any]:
        errors = []
        if not request.emailOrUsername.strip():
            errors.append({"field": "emailOrUsername", "message": "Email or username is required"})
        if not request.password:
            errors.append({"field": "password", "message": "Password is required"})
        if errors:
            raise ApiError(400, "Validation failed", "VALIDATION_ERROR", errors)

        user = await app.state.users.find_by_login(request.emailOrUsername)
        if user is None or not await app.state.hasher.verify(
            request.password, user.password_hash
        ):
            logger.info("Rejected login attempt")
            raise ApiError(401, "Invalid credentials", "INVALID_CREDENTIALS")
        token, refresh_token = tokens_for(user)
        logger.info("User %s logged in", user.username)
        return {
            "success": True,
            "message": "Login successful",
            "user": user.public(),
            "token": token,
            "refreshToken": refresh_token,
        }

    @app.post(f"{API_PREFIX}/logout")
    async def logout(authorization: str | None = Header(default=None)) -> dict[str, Any]:
        claims = bearer_claims(authorization)
        app.state.issuer.revoke(claims)
        logger.info("User %s logged out", claims.get("username"))
        return {"success": True, "message": "Logged out successfully"}

    @app.get(f"{API_PREFIX}/me")
    async def me(authorization: str | None = Header(default=None)) -> dict[str, Any]:
        claims = bearer_claims(authorization)
        user = await app.state.users.get(claims.get("userId", ""))
        if user is None:
            raise ApiError(401, "User not found", "INVALID_TOKEN")
        return {"success": True, "user": user.public()}

    @app.post(f"{API_PREFIX}/refresh")
    async def refresh(request: RefreshRequest) -> dict[str, Any]:
        if not request.refreshToken:
            raise ApiError(
                400,
                "Validation failed",
                "VALIDATION_ERROR",
                [{"field": "refreshToken", "message": "Refresh token is required"}],
            )
        try:
            claims = app.state.issuer.verify(request.refreshToken, token_type=REFRESH)
        except TokenError as e:
            raise ApiError(401, f"Token refresh failed: {e.message}", "REFRESH_FAILED") from e
        user = await app.state.users.get(claims.get("userId", ""))
        if user is None:
            raise ApiError(401, "Token refresh failed: user not found", "REFRESH_FAILED")
        token = app.state.issuer.issue(user.id, user.username, user.email)
        return {
            "success": True,
            "message": "Token refreshed successfully",
            "token": token,
            "user": user.public(),
        }

    return app


def _extract_token(authorization: str | None) -> str | None:
    """Accept both ``Bearer <token>`` and a bare token."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    if len(parts) == 1:
        return parts[0]
    return None


def app_from_settings(settings: Settings) -> FastAPI:
    """Build the service from the ``auth_server`` configuration section."""
    config = settings.auth_server
    issuer = TokenIssuer(
        config.jwt_secret.get_secret_value(),
        issuer=config.issuer,
        audience=config.audience,
        access_ttl=config.access_token_ttl,
        refresh_ttl=config.refresh_token_ttl,
    )
    return create_app(issuer, hasher=get_hasher(config.password_hasher))


def main() -> None:
    """Entry point for running the credential service standalone."""
    settings = load_settings()
    app = app_from_settings(settings)
    uvicorn.run(app, host=settings.auth_server.host, port=settings.auth_server.port)


if __name__ == "__main__":
    main()
