"""JWT issuing, verification and revocation for the credential service.

Tokens are HS256 JWTs carrying the user's id, username and email plus an
issuer, audience, a unique ``jti`` and a ``tokenType`` of ``access`` or
``refresh``. Revoked tokens are remembered by ``jti`` in a
:class:`TokenBlacklist` only until they would have expired anyway.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from typing import Any

import jwt

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
MIN_SECRET_LENGTH = 32
PLACEHOLDER_SECRETS = ("your-super-secret-jwt-key", "change-me", "changeme")

ACCESS = "access"
REFRESH = "refresh"

Clock = Callable[[], float]


class TokenError(Exception):
    """Raised when a token cannot be accepted.

    Attributes:
        code: Machine-readable reason (e.g., 'TOKEN_EXPIRED').
    """

    def __init__(self, message: str, code: str = "INVALID_TOKEN") -> None:
        super().__init__(message)
        self.message = message
        self.code = code


def validate_secret(secret: str) -> bool:
    """A signing secret must be long enough and not a documented placeholder."""
    if not secret or len(secret) < MIN_SECRET_LENGTH:
        return False
    lowered = secret.lower()
    return not any(placeholder in lowered for placeholder in PLACEHOLDER_SECRETS)


class TokenBlacklist:
    """Revoked token ids, each kept until its token's expiry passes."""

    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock
        self._entries: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, jti: str, expires_at: float) -> None:
        if expires_at <= self._clock():
            return
        self._entries[jti] = expires_at

    def contains(self, jti: str) -> bool:
        self.evict_expired()
        return jti in self._entries

    def evict_expired(self) -> int:
        """Drop entries whose token has expired. Returns how many were dropped."""
        now = self._clock()
        expired = [jti for jti, exp in self._entries.items() if exp <= now]
        for jti in expired:
            del self._entries[jti]
        if expired:
            logger.debug("Evicted %d expired blacklist entries", len(expired))
        return len(expired)


class TokenIssuer:
    """Signs and checks the service's JWTs.

    Raises:
        ValueError: If ``secret`` fails :func:`validate_secret`.
    """

    def __init__(
        self,
        secret: str,
        issuer: str = "termfolio",
        audience: str = "termfolio-users",
        access_ttl: int = 24 * 60 * 60,
        refresh_ttl: int = 7 * 24 * 60 * 60,
        blacklist: TokenBlacklist | None = None,
        clock: Clock = time.time,
    ) -> None:
        if not validate_secret(secret):
            raise ValueError(
                f"JWT secret is not secure enough. Must be at least "
                f"{MIN_SECRET_LENGTH} characters and not use default values."
            )
        self._secret = secret
        self._issuer = issuer
        self._audience = audience
        self._ttl = {ACCESS: access_ttl, REFRESH: refresh_ttl}
        self._clock = clock
        self._blacklist = blacklist if blacklist is not None else TokenBlacklist(clock)

    @property
    def blacklist(self) -> TokenBlacklist:
        return self._blacklist

    def issue(self, user_id: str, username: str, email: str, token_type: str = ACCESS) -> str:
        now = int(self._clock())
        payload = {
            "userId": user_id,
            "username": username,
            "email": email,
            "tokenType": token_type,
            "iat": now,
            "exp": now + self._ttl[token_type],
            "iss": self._issuer,
            "aud": self._audience,
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def issue_pair(self, user_id: str, username: str, email: str) -> tuple[str, str]:
        """Return ``(access_token, refresh_token)``."""
        return (
            self.issue(user_id, username, email, ACCESS),
            self.issue(user_id, username, email, REFRESH),
        )

    def verify(self, token: str, token_type: str = ACCESS) -> dict[str, Any]:
        """Decode ``token`` and check its type, expiry and revocation.

        Raises:
            TokenError: With code TOKEN_EXPIRED, TOKEN_REVOKED or
                INVALID_TOKEN.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                audience=self._audience,
                issuer=self._issuer,
                options={
                    "require": ["exp", "iat", "jti"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as e:
            raise TokenError("Invalid token format or signature", "INVALID_TOKEN") from e

        if claims["exp"] <= self._clock():
            raise TokenError("Token has expired", "TOKEN_EXPIRED")
        if claims.get("tokenType") != token_type:
            raise TokenError(
                f"Invalid token type. Expected: {token_type}, Got: {claims.get('tokenType')}",
                "INVALID_TOKEN",
            )
        if self._blacklist.contains(claims["jti"]):
            raise TokenError("Token has been revoked", "TOKEN_REVOKED")
        return claims

    def revoke(self, claims: dict[str, Any]) -> None:
        self._blacklist.add(claims["jti"], float(claims["exp"]))
