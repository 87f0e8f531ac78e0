"""Persistence of the access token, refresh token and cached identity.

The session store is the only writer. Reads are forgiving: a missing
entry, a missing file or unreadable content all read as "no session".
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import ValidationError

from termfolio.domain.models import UserRef

logger = logging.getLogger(__name__)

AUTH_TOKEN_KEY = "termfolio_auth_token"
REFRESH_TOKEN_KEY = "termfolio_refresh_token"
USER_KEY = "termfolio_user"


class TokenStore(ABC):
    """Abstract key/value storage for session credentials.

    Subclasses only provide raw string access; the typed helpers
    (:meth:`save`, :meth:`load_user`, :meth:`clear`) are shared.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    def load_token(self) -> str | None:
        return self.get(AUTH_TOKEN_KEY) or None

    def load_refresh_token(self) -> str | None:
        return self.get(REFRESH_TOKEN_KEY) or None

    def load_user(self) -> UserRef | None:
        """Return the cached identity, or None if absent or unparseable."""
        raw = self.get(USER_KEY)
        if not raw:
            return None
        try:
            return UserRef.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable cached user")
            return None

    def save(
        self,
        token: str,
        user: UserRef | None = None,
        refresh_token: str | None = None,
    ) -> None:
        """Persist a freshly issued token and optionally identity/refresh."""
        self.set(AUTH_TOKEN_KEY, token)
        if refresh_token:
            self.set(REFRESH_TOKEN_KEY, refresh_token)
        if user is not None:
            self.set(USER_KEY, user.model_dump_json())

    def clear(self) -> None:
        for key in (AUTH_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY):
            self.delete(key)


class MemoryTokenStore(TokenStore):
    """Process-local store; credentials vanish when the process exits."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class FileTokenStore(TokenStore):
    """Stores credentials as a flat JSON object in a file.

    Every write rewrites the whole file through a temporary file and an
    atomic rename, so a crash never leaves a half-written document.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> str | None:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def _read(self) -> dict:
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable token file %s: %s", self._path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed token file %s", self._path)
            return {}
        return data

    def _write(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=".tokens-", suffix=".json"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self._path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
