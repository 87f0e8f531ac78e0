"""Command table for the portfolio terminal.

The set of commands is closed: :class:`CommandKind` lists every one of
them and :class:`CommandTable` refuses to build unless each kind has a
handler. Handlers never write to the terminal themselves; they return a
:data:`CommandResult` and leave rendering to the dispatcher.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from termfolio.domain.models import (
    AuthFlow,
    ClearScreen,
    CommandResult,
    EnterAuthFlow,
    Session,
    TextOutput,
)
from termfolio.terminal.content import Link, PortfolioContent

logger = logging.getLogger(__name__)


class CommandKind(enum.Enum):
    """Every command the terminal understands, keyed by its typed name."""

    WELCOME = "welcome"
    HELP = "help"
    ABOUT = "about"
    CLEAR = "clear"
    ECHO = "echo"
    EDUCATION = "education"
    EMAIL = "email"
    GITHUB = "github"
    HISTORY = "history"
    PROJECTS = "projects"
    PWD = "pwd"
    SOCIALS = "socials"
    THEMES = "themes"
    WHOAMI = "whoami"
    # Compound commands
    PROJECTS_GO = "projects go"
    SOCIALS_GO = "socials go"
    THEMES_SET = "themes set"
    AUTH_SIGNUP = "auth signup"
    AUTH_LOGIN = "auth login"
    AUTH_LOGOUT = "auth logout"

    @property
    def is_compound(self) -> bool:
        return " " in self.value


_BY_NAME = {kind.value: kind for kind in CommandKind}

# Commands still accepted while a credential call is outstanding
BUSY_ALLOWED = frozenset({"clear", "help"})

COMMAND_HELP = (
    ("about", "about me"),
    ("clear", "clear the terminal"),
    ("echo", "print out anything"),
    ("education", "my education background"),
    ("email", "send an email to me"),
    ("github", "view my GitHub profile"),
    ("help", "check available commands"),
    ("history", "view command history"),
    ("projects", "view projects that I've coded"),
    ("pwd", "print current working directory"),
    ("socials", "check out my social accounts"),
    ("themes", "check available themes"),
    ("whoami", "about current user"),
)

AUTH_HELP = (
    ("auth signup", "Create a new account"),
    ("auth login", "Login to your account"),
    ("auth logout", "Logout from your account"),
)


@dataclass(frozen=True)
class CommandContext:
    """What a handler may know about the terminal when it runs."""

    session: Session = field(default_factory=Session)
    history: Sequence[str] = ()
    busy: bool = False


Handler = Callable[[list[str], CommandContext], CommandResult]
Opener = Callable[[str], None]


class CommandTable:
    """Resolves typed lines to commands and runs their handlers.

    Args:
        content: Portfolio text and links.
        opener: Called with the URL picked by ``projects go`` /
            ``socials go``; the terminal only prints the link without one.
    """

    def __init__(
        self,
        content: PortfolioContent | None = None,
        opener: Opener | None = None,
    ) -> None:
        self._content = content or PortfolioContent()
        self._opener = opener
        self._theme = self._content.themes[0] if self._content.themes else ""
        self._handlers: dict[CommandKind, Handler] = {
            CommandKind.WELCOME: self._welcome,
            CommandKind.HELP: self._help,
            CommandKind.ABOUT: self._text(lambda c: c.about),
            CommandKind.CLEAR: lambda args, ctx: ClearScreen(),
            CommandKind.ECHO: lambda args, ctx: TextOutput(text=" ".join(args)),
            CommandKind.EDUCATION: self._text(lambda c: c.education),
            CommandKind.EMAIL: self._text(lambda c: c.email),
            CommandKind.GITHUB: self._text(lambda c: f"GitHub: {c.github_url}"),
            CommandKind.HISTORY: self._history,
            CommandKind.PROJECTS: self._text(lambda c: c.projects_listing()),
            CommandKind.PWD: self._text(lambda c: c.home_dir),
            CommandKind.SOCIALS: self._text(lambda c: c.socials_listing()),
            CommandKind.THEMES: self._text(lambda c: c.themes_listing()),
            CommandKind.WHOAMI: lambda args, ctx: TextOutput(text=ctx.session.display_name),
            CommandKind.PROJECTS_GO: self._projects_go,
            CommandKind.SOCIALS_GO: self._socials_go,
            CommandKind.THEMES_SET: self._themes_set,
            CommandKind.AUTH_SIGNUP: self._auth_signup,
            CommandKind.AUTH_LOGIN: self._auth_login,
            CommandKind.AUTH_LOGOUT: self._auth_logout,
        }
        missing = [kind.value for kind in CommandKind if kind not in self._handlers]
        if missing:
            raise TypeError(f"No handler for commands: {', '.join(missing)}")

    @property
    def content(self) -> PortfolioContent:
        return self._content

    @property
    def theme(self) -> str:
        return self._theme

    def names(self, include_compound: bool = True) -> list[str]:
        return [
            kind.value
            for kind in CommandKind
            if include_compound or not kind.is_compound
        ]

    def resolve(self, line: str) -> tuple[CommandKind, list[str]] | None:
        """Find the command for ``line``: two-token names win over one."""
        parts = line.split()
        if not parts:
            return None
        if len(parts) >= 2:
            kind = _BY_NAME.get(f"{parts[0]} {parts[1]}")
            if kind is not None:
                return kind, parts[2:]
        kind = _BY_NAME.get(parts[0])
        if kind is not None and not kind.is_compound:
            return kind, parts[1:]
        return None

    def execute(self, line: str, context: CommandContext | None = None) -> CommandResult:
        context = context or CommandContext()
        line = line.strip()
        resolved = self.resolve(line)
        if resolved is None:
            return TextOutput(text=f"Command not found: {line}")
        kind, args = resolved
        logger.debug("Running %s with %d args", kind.value, len(args))
        return self._handlers[kind](args, context)

    def completions(self, prefix: str) -> list[str]:
        """Single-token command names starting with ``prefix``, ignoring case."""
        prefix = prefix.lower()
        return [
            name for name in self.names(include_compound=False)
            if name.lower().startswith(prefix)
        ]

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _text(self, render: Callable[[PortfolioContent], str]) -> Handler:
        return lambda args, ctx: TextOutput(text=render(self._content))

    def _welcome(self, args: list[str], ctx: CommandContext) -> CommandResult:
        return ClearScreen(banner=self._content.banner())

    def _help(self, args: list[str], ctx: CommandContext) -> CommandResult:
        lines = [f"{name.ljust(12)} - {text}" for name, text in COMMAND_HELP]
        lines += ["", "Authentication Commands:"]
        lines += [f"{name.ljust(15)} - {text}" for name, text in AUTH_HELP]
        lines += [
            "",
            "Tab or Ctrl + i => autocompletes the command",
            "Up Arrow => go back to previous command",
            "Ctrl + l => clear the terminal",
        ]
        if ctx.busy:
            lines += [
                "",
                "\x1b[33mAuthentication in progress - some commands are disabled\x1b[0m",
                "Ctrl + C => cancel current authentication operation",
            ]
        return TextOutput(text="\n".join(lines))

    def _history(self, args: list[str], ctx: CommandContext) -> CommandResult:
        if not ctx.history:
            return TextOutput(text="No commands in history.")
        return TextOutput(
            text="\n".join(f"{i}  {cmd}" for i, cmd in enumerate(ctx.history, start=1))
        )

    def _projects_go(self, args: list[str], ctx: CommandContext) -> CommandResult:
        return self._open(self._content.projects, args, "Project", "projects")

    def _socials_go(self, args: list[str], ctx: CommandContext) -> CommandResult:
        return self._open(self._content.socials, args, "Social", "socials")

    def _open(
        self, links: list[Link], args: list[str], label: str, listing: str
    ) -> CommandResult:
        if not args:
            return TextOutput(text=f"Usage: {listing} go <{label.lower()}-no>")
        try:
            number = int(args[0])
        except ValueError:
            number = 0
        if not 1 <= number <= len(links):
            return TextOutput(
                text=f"{label} {args[0]} not found. Use '{listing}' to see available {listing}."
            )
        link = links[number - 1]
        if self._opener is not None:
            self._opener(link.url)
        return TextOutput(text=f"Opening {link.name}...\n{link.url}")

    def _themes_set(self, args: list[str], ctx: CommandContext) -> CommandResult:
        if not args:
            return TextOutput(text="Usage: themes set <theme-name>")
        name = args[0]
        if name not in self._content.themes:
            return TextOutput(
                text=f"Theme '{name}' not found. Use 'themes' to see available themes."
            )
        self._theme = name
        return TextOutput(text=f"Theme set to {name}")

    def _auth_signup(self, args: list[str], ctx: CommandContext) -> CommandResult:
        if ctx.session.user is not None:
            return TextOutput(text="You are already logged in. Please logout first.")
        return EnterAuthFlow(flow=AuthFlow.SIGNUP)

    def _auth_login(self, args: list[str], ctx: CommandContext) -> CommandResult:
        if ctx.session.user is not None:
            return TextOutput(text="You are already logged in.")
        return EnterAuthFlow(flow=AuthFlow.LOGIN)

    def _auth_logout(self, args: list[str], ctx: CommandContext) -> CommandResult:
        if ctx.session.user is None:
            return TextOutput(text="You are not logged in.")
        return EnterAuthFlow(flow=AuthFlow.LOGOUT)
