"""Tests for keystroke dispatch, driven through a complete terminal."""

from __future__ import annotations

import pytest

from termfolio.domain.models import AuthPhase, AuthResult, ErrorKind
from termfolio.terminal import keys
from termfolio.terminal.dispatcher import (
    AUTOCOMPLETE_DISABLED,
    BUSY_WARNING,
    HISTORY_DISABLED,
    DispatchState,
)
from termfolio.terminal.screen import ScreenBuffer
from termfolio.terminal.session import TerminalSession


async def login(terminal: TerminalSession, name: str = "bob", password: str = "hunter22") -> None:
    terminal.dispatch_keystroke(f"auth login\r{name}\r{password}\r")
    await terminal.wait_idle()


class TestLineEditing:
    def test_boot_shows_guest_prompt(self, terminal: TerminalSession, screen: ScreenBuffer) -> None:
        assert screen.output == "guest@host:~$ "

    def test_typing_echoes(self, terminal: TerminalSession, screen: ScreenBuffer) -> None:
        terminal.dispatch_keystroke("echo hi")
        assert screen.current_line == "guest@host:~$ echo hi"
        assert terminal.dispatcher.buffer.text == "echo hi"

    def test_backspace(self, terminal: TerminalSession, screen: ScreenBuffer) -> None:
        terminal.dispatch_keystroke("abc" + keys.BACKSPACE + keys.CTRL_H)
        assert terminal.dispatcher.buffer.text == "a"
        assert screen.current_line == "guest@host:~$ a"

    def test_backspace_never_eats_prompt(self, terminal: TerminalSession, screen: ScreenBuffer) -> None:
        terminal.dispatch_keystroke(keys.BACKSPACE * 3)
        assert screen.current_line == "guest@host:~$ "

    def test_echo_command(self, terminal: TerminalSession, screen: ScreenBuffer) -> None:
        terminal.dispatch_keystroke("echo hello world\r")
        assert screen.lines == ["guest@host:~$ echo hello world", "hello world", "guest@host:~$"]

    def test_empty_enter_redraws_prompt(self, terminal: TerminalSession, screen: ScreenBuffer) -> None:
        terminal.dispatch_keystroke("   \r")
        assert screen.lines[-1] == "guest@host:~$"
        assert len(terminal.dispatcher.history) == 0

    def test_unknown_command(self, terminal: TerminalSession, screen: ScreenBuffer) -> None:
        terminal.dispatch_keystroke("sudo make me a sandwich\r")
        assert "Command not found: sudo make me a sandwich" in screen.lines

    def test_multiline_output_uses_crlf(self, terminal: TerminalSession, screen: ScreenBuffer) -> None:
        terminal.dispatch_keystroke("history\r")
        terminal.dispatch_keystroke("history\r")
        assert "1  history" in screen.lines
        assert "2  history" in screen.lines

    def test_ctrl_c_abandons_line(self, terminal: TerminalSession, screen: ScreenBuffer) -> None:
        terminal.dispatch_keystroke("echo nope" + keys.CTRL_C)
        assert screen.lines[-2] == "guest@host:~$ echo nope^C"
        assert screen.current_line == "guest@host:~$ "
        assert terminal.dispatcher.buffer.text == ""

    def test_ctrl_l_clears_screen(self, terminal: TerminalSession, screen: ScreenBuffer) -> None:
        terminal.dispatch_keystroke("echo a\rxyz" + keys.CTRL_L)
        assert screen.lines == ["guest@host:~$"]
        assert terminal.dispatcher.buffer.text == ""

    def test_clear_command(self, terminal: TerminalSession, screen: ScreenBuffer) -> None:
        terminal.dispatch_keystroke("echo a\rclear\r")
        assert screen.lines == ["guest@host:~$"]

    def test_other_escape_sequences_ignored(self, terminal: TerminalSession) -> None:
        terminal.dispatch_keystroke("ab" + keys.LEFT + keys.RIGHT)
        assert terminal.dispatcher.buffer.text == "ab"


class TestHistoryRecall:
    def test_up_up_down_down(self, terminal: TerminalSession, screen: ScreenBuffer) -> None:
        terminal.dispatch_keystroke("echo a\recho b\r")
        terminal.dispatch_keystroke(keys.UP)
        assert terminal.dispatcher.buffer.text == "echo b"
        assert screen.current_line == "guest@host:~$ echo b"
        terminal.dispatch_keystroke(keys.UP)
        assert terminal.dispatcher.buffer.text == "echo a"
        assert screen.current_line == "guest@host:~$ echo a"
        terminal.dispatch_keystroke(keys.DOWN)
        assert terminal.dispatcher.buffer.text == "echo b"
        terminal.dispatch_keystroke(keys.DOWN)
        assert terminal.dispatcher.buffer.text == ""
        assert screen.current_line == "guest@host:~$ "

    def test_up_with_empty_history(self, terminal: TerminalSession, screen: ScreenBuffer) -> None:
        terminal.dispatch_keystroke("ab" + keys.UP)
        assert terminal.dispatcher.buffer.text == "ab"

    def test_recalled_line_can_be_submitted(self, terminal: TerminalSession, screen: ScreenBuffer) -> None:
        terminal.dispatch_keystroke("echo again\r" + keys.UP + "\r")
        assert screen.lines.count("again") == 2


class TestAutocomplete:
    def test_single_match_completes(self, terminal: TerminalSession, screen: ScreenBuffer) -> None:
        terminal.dispatch_keystroke("he" + keys.TAB)
        assert terminal.dispatcher.buffer.text == "help"
        assert screen.current_line == "guest@host:~$ help"

    def test_multiple_matches_are_listed(self, terminal: TerminalSession, screen: ScreenBuffer) -> None:
        terminal.dispatch_keystroke("h" + keys.TAB)
        assert "help history" in screen.lines
        assert screen.current_line == "guest@host:~$ h"
        assert terminal.dispatcher.buffer.text == "h"

    def test_no_match_does_nothing(self, terminal: TerminalSession, screen: ScreenBuffer) -> None:
        terminal.dispatch_keystroke("zz" + keys.TAB)
        assert screen.output == "guest@host:~$ zz"


class TestAuthFlows:
    @pytest.mark.asyncio
    async def test_signup_switches_prompt(
        self, terminal: TerminalSession, screen: ScreenBuffer
    ) -> None:
        terminal.dispatch_keystroke("auth signup\r")
        assert terminal.dispatcher.state is DispatchState.FORM_ACTIVE
        assert "Creating new account..." in screen.lines
        terminal.dispatch_keystroke("bob\rbob@example.com\rAa1!aaaa\rAa1!aaaa\r")
        await terminal.wait_idle()
        assert terminal.prompt_text() == "bob@host:~$ "
        assert screen.current_line == "bob@host:~$ "
        assert "✔ Account created successfully" in screen.lines
        assert "✔ You are now logged in" in screen.lines
        assert "Aa1!aaaa" not in screen.output
        assert terminal.dispatcher.state is DispatchState.IDLE

    @pytest.mark.asyncio
    async def test_login_then_logout_restores_guest(
        self, terminal: TerminalSession, screen: ScreenBuffer, stub_service
    ) -> None:
        await login(terminal)
        assert terminal.prompt_text() == "bob@host:~$ "
        assert "✔ Login successful" in screen.lines
        terminal.dispatch_keystroke("whoami\r")
        assert "bob" in screen.lines

        terminal.dispatch_keystroke("auth logout\r")
        await terminal.wait_idle()
        assert "✔ Logged out successfully" in screen.lines
        assert terminal.prompt_text() == "guest@host:~$ "
        assert screen.current_line == "guest@host:~$ "
        assert stub_service.names() == ["login", "logout"]
        assert terminal.store.tokens.load_token() is None

    @pytest.mark.asyncio
    async def test_failed_login_reports_error(
        self, terminal: TerminalSession, screen: ScreenBuffer, stub_service
    ) -> None:
        stub_service.queue(
            "login",
            AuthResult(
                success=False, message="Invalid credentials", error_kind=ErrorKind.AUTH_FAILURE
            ),
        )
        await login(terminal)
        assert "Invalid credentials" in screen.lines
        assert screen.current_line == "guest@host:~$ "
        assert terminal.store.session.phase is AuthPhase.ERROR

    @pytest.mark.asyncio
    async def test_failed_logout_still_signs_out(
        self, terminal: TerminalSession, screen: ScreenBuffer, stub_service
    ) -> None:
        await login(terminal)
        stub_service.queue(
            "logout",
            AuthResult(success=False, message="Connection error.", error_kind=ErrorKind.TRANSPORT),
        )
        terminal.dispatch_keystroke("auth logout\r")
        await terminal.wait_idle()
        assert "Logout failed, but local session cleared." in screen.lines
        assert screen.current_line == "guest@host:~$ "

    def test_form_cancel_with_ctrl_c(self, terminal: TerminalSession, screen: ScreenBuffer) -> None:
        terminal.dispatch_keystroke("auth login\rbo" + keys.CTRL_C)
        assert "Authentication cancelled." in screen.lines
        assert terminal.dispatcher.state is DispatchState.IDLE
        assert screen.current_line == "guest@host:~$ "
        terminal.dispatch_keystroke("echo ok\r")
        assert "ok" in screen.lines

    def test_form_cancel_on_password_field(
        self, terminal: TerminalSession, screen: ScreenBuffer, stub_service
    ) -> None:
        terminal.dispatch_keystroke("auth login\rbob\rsecr" + keys.CTRL_C)
        assert "Authentication cancelled." in screen.lines
        assert screen.current_line == "guest@host:~$ "
        assert stub_service.calls == []

    def test_tab_and_history_disabled_in_form(
        self, terminal: TerminalSession, screen: ScreenBuffer
    ) -> None:
        terminal.dispatch_keystroke("help\rauth login\rbo" + keys.TAB)
        assert AUTOCOMPLETE_DISABLED in screen.lines
        assert screen.current_line == "Email or Username: bo"
        terminal.dispatch_keystroke(keys.UP)
        assert HISTORY_DISABLED in screen.lines
        assert screen.current_line == "Email or Username: bo"
        assert terminal.dispatcher.buffer.text == "bo"

    def test_ctrl_l_in_form_reprompts(self, terminal: TerminalSession, screen: ScreenBuffer) -> None:
        terminal.dispatch_keystroke("auth login\rbo" + keys.CTRL_L)
        assert screen.lines == ["Email or Username: bo"]

    def test_form_keys_do_not_reach_history(self, terminal: TerminalSession) -> None:
        terminal.dispatch_keystroke("auth login\rbob\r" + keys.CTRL_C)
        assert terminal.dispatcher.history.entries == ["auth login"]

    def test_already_logged_in_guard(self, terminal: TerminalSession, screen: ScreenBuffer) -> None:
        terminal.dispatch_keystroke("auth logout\r")
        assert "You are not logged in." in screen.lines


class TestBusyTerminal:
    @pytest.mark.asyncio
    async def test_commands_blocked_while_authenticating(
        self, terminal: TerminalSession, screen: ScreenBuffer, stub_service
    ) -> None:
        gate = stub_service.hold("login")
        terminal.dispatch_keystroke("auth login\rbob\rhunter22\r")
        assert terminal.is_busy()
        assert "Authenticating..." in screen.current_line

        terminal.dispatch_keystroke("projects\r")
        assert BUSY_WARNING in screen.lines
        assert "Here are some of my projects you shouldn't miss" not in screen.lines
        assert terminal.dispatcher.history.entries == ["auth login"]

        terminal.dispatch_keystroke("help\r")
        assert "Ctrl + C => cancel current authentication operation" in screen.lines
        assert terminal.dispatcher.history.entries == ["auth login", "help"]

        gate.set()
        await terminal.wait_idle()
        assert not terminal.is_busy()
        assert screen.current_line == "bob@host:~$ "
        terminal.dispatch_keystroke("projects\r")
        assert "Here are some of my projects you shouldn't miss" in screen.lines

    @pytest.mark.asyncio
    async def test_ctrl_c_abandons_outstanding_call(
        self, terminal: TerminalSession, screen: ScreenBuffer, stub_service
    ) -> None:
        gate = stub_service.hold("login")
        terminal.dispatch_keystroke("auth login\rbob\rhunter22\r")
        assert terminal.is_busy()

        terminal.dispatch_keystroke(keys.CTRL_C)
        assert "Authentication cancelled." in screen.lines
        assert screen.current_line == "guest@host:~$ "
        assert not terminal.is_busy()
        terminal.dispatch_keystroke("ec")

        gate.set()
        await terminal.wait_idle()
        # The outcome still lands in the session; the prompt redraws in place
        assert "✔ Login successful" not in screen.lines
        assert terminal.store.session.user is not None
        assert screen.current_line == "bob@host:~$ ec"
        assert terminal.dispatcher.buffer.text == "ec"
