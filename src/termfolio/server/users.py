"""In-memory user storage for the reference credential service."""

from __future__ import annotations

import time
import uuid

from pydantic import BaseModel, ConfigDict, Field


class UserRecord(BaseModel):
    """A stored account. ``password_hash`` never leaves the server."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    username: str
    email: str
    password_hash: str
    created_at: float = Field(default_factory=time.time)

    def public(self) -> dict[str, str]:
        return {"id": self.id, "username": self.username, "email": self.email}


class UserExistsError(Exception):
    """Raised when a username or email is already taken.

    Attributes:
        field: Which unique field collided ('username' or 'email').
    """

    def __init__(self, field: str) -> None:
        super().__init__(f"{field} already exists")
        self.field = field


class InMemoryUserRepository:
    """Users keyed by id; usernames and emails are unique ignoring case.

    Accounts are lost when the process exits.
    """

    def __init__(self) -> None:
        self._users: dict[str, UserRecord] = {}

    def __len__(self) -> int:
        return len(self._users)

    async def create(self, username: str, email: str, password_hash: str) -> UserRecord:
        email = email.strip().lower()
        if self._find(username=username) is not None:
            raise UserExistsError("username")
        if self._find(email=email) is not None:
            raise UserExistsError("email")
        user = UserRecord(username=username, email=email, password_hash=password_hash)
        self._users[user.id] = user
        return user

    async def get(self, user_id: str) -> UserRecord | None:
        return self._users.get(user_id)

    async def find_by_login(self, identifier: str) -> UserRecord | None:
        """Look a user up by email or username."""
        identifier = identifier.strip()
        if "@" in identifier:
            return self._find(email=identifier.lower())
        return self._find(username=identifier)

    def _find(self, username: str | None = None, email: str | None = None) -> UserRecord | None:
        for user in self._users.values():
            if username is not None and user.username.lower() == username.lower():
                return user
            if email is not None and user.email == email:
                return user
        return None
