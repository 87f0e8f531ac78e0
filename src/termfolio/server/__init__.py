"""Reference credential service for termfolio.

A FastAPI application implementing the signup / login / logout / me /
refresh routes the terminal's credential client talks to, with bcrypt
password hashing and revocable HS256 JWTs.
"""

from termfolio.server.app import create_app
from termfolio.server.tokens import TokenBlacklist, TokenError, TokenIssuer
from termfolio.server.users import InMemoryUserRepository, UserExistsError

__all__ = [
    "InMemoryUserRepository",
    "TokenBlacklist",
    "TokenError",
    "TokenIssuer",
    "UserExistsError",
    "create_app",
]
