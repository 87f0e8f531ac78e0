"""Tests for token persistence."""

from __future__ import annotations

import json
import os
import stat
from pathlib import Path

import pytest

from termfolio.auth.token_store import (
    AUTH_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    USER_KEY,
    FileTokenStore,
    MemoryTokenStore,
)
from termfolio.domain.models import UserRef


class TestMemoryTokenStore:
    def test_empty(self) -> None:
        tokens = MemoryTokenStore()
        assert tokens.load_token() is None
        assert tokens.load_refresh_token() is None
        assert tokens.load_user() is None

    def test_save_and_clear(self) -> None:
        tokens = MemoryTokenStore()
        user = UserRef(id="1", username="bob", email="bob@example.com")
        tokens.save("access", user, "refresh")
        assert tokens.load_token() == "access"
        assert tokens.load_refresh_token() == "refresh"
        assert tokens.load_user() == user
        tokens.clear()
        assert tokens.load_token() is None
        assert tokens.load_user() is None

    def test_save_keeps_existing_refresh_token(self) -> None:
        tokens = MemoryTokenStore()
        tokens.save("first", refresh_token="refresh")
        tokens.save("second")
        assert tokens.load_token() == "second"
        assert tokens.load_refresh_token() == "refresh"

    def test_unreadable_user_is_ignored(self) -> None:
        tokens = MemoryTokenStore({USER_KEY: "{not json"})
        assert tokens.load_user() is None

    def test_empty_token_reads_as_none(self) -> None:
        assert MemoryTokenStore({AUTH_TOKEN_KEY: ""}).load_token() is None


class TestFileTokenStore:
    def test_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "session.json"
        tokens = FileTokenStore(path)
        tokens.save("access", UserRef(username="bob"), "refresh")
        assert json.loads(path.read_text())[REFRESH_TOKEN_KEY] == "refresh"
        reopened = FileTokenStore(path)
        assert reopened.load_token() == "access"
        assert reopened.load_user() == UserRef(username="bob")

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
    def test_file_is_private(self, tmp_path: Path) -> None:
        path = tmp_path / "session.json"
        FileTokenStore(path).save("access")
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_missing_file(self, tmp_path: Path) -> None:
        assert FileTokenStore(tmp_path / "absent.json").load_token() is None

    @pytest.mark.parametrize("content", ["{broken", "[1, 2]", "\"text\""])
    def test_corrupt_file_reads_as_empty(self, tmp_path: Path, content: str) -> None:
        path = tmp_path / "session.json"
        path.write_text(content)
        tokens = FileTokenStore(path)
        assert tokens.load_token() is None
        tokens.save("fresh")
        assert tokens.load_token() == "fresh"

    def test_clear_removes_entries(self, tmp_path: Path) -> None:
        path = tmp_path / "session.json"
        tokens = FileTokenStore(path)
        tokens.save("access", UserRef(username="bob"), "refresh")
        tokens.clear()
        assert json.loads(path.read_text()) == {}

    def test_expands_home(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("HOME", str(tmp_path))
        tokens = FileTokenStore("~/session.json")
        assert tokens.path == tmp_path / "session.json"

    def test_no_leftover_temp_files(self, tmp_path: Path) -> None:
        tokens = FileTokenStore(tmp_path / "session.json")
        tokens.save("a")
        tokens.save("b")
        assert [p.name for p in tmp_path.iterdir()] == ["session.json"]
