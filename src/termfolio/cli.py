"""Command-line interface for termfolio.

Provides the main entry point for running the portfolio terminal on the
local TTY, serving it to a browser, or running the reference credential
service.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="termfolio",
        description="Terminal-style portfolio with an interactive account system",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/termfolio.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    shell_parser = subparsers.add_parser("shell", help="Run the terminal on this TTY")
    shell_parser.add_argument(
        "--no-restore", action="store_true",
        help="Start signed out even if a saved session exists",
    )

    subparsers.add_parser("serve", help="Serve the web terminal over HTTP")
    subparsers.add_parser("auth-server", help="Run the reference credential service")

    return parser.parse_args(argv)


async def _run_shell(settings, restore: bool) -> None:
    """Build the TTY terminal and drive it until Ctrl+D."""
    import webbrowser

    from termfolio.auth.client import CredentialService
    from termfolio.auth.session import SessionStore
    from termfolio.auth.token_store import FileTokenStore, MemoryTokenStore
    from termfolio.terminal.session import TerminalSession
    from termfolio.terminal.stdio import StdioTerminal, run_shell

    creds = settings.credentials
    tokens = FileTokenStore(creds.token_file) if creds.token_file else MemoryTokenStore()

    async with CredentialService(base_url=creds.base_url, timeout=creds.timeout) as service:
        terminal = TerminalSession(
            StdioTerminal(),
            SessionStore(service, tokens=tokens),
            content=settings.content,
            host=settings.terminal.prompt_host,
            colors=settings.terminal.colors,
            history_limit=settings.terminal.history_limit,
            show_banner=settings.terminal.show_banner,
            opener=webbrowser.open,
        )
        try:
            await run_shell(terminal, restore=restore)
        finally:
            terminal.close()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the termfolio CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from termfolio.config.settings import load_settings
    from termfolio.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging, console=args.command != "shell")

    if args.command == "shell":
        restore = settings.credentials.restore_on_start and not args.no_restore
        logger.info("Starting terminal against %s", settings.credentials.base_url)
        asyncio.run(_run_shell(settings, restore))

    elif args.command == "serve":
        logger.info("Starting web terminal")
        from termfolio.endpoint.server import create_app
        import uvicorn
        ep = settings.endpoint
        app = create_app(settings=settings, restore=settings.credentials.restore_on_start)
        uvicorn.run(app, host=ep.host, port=ep.port)

    elif args.command == "auth-server":
        logger.info("Starting credential service")
        from termfolio.server.app import app_from_settings
        import uvicorn
        app = app_from_settings(settings)
        uvicorn.run(app, host=settings.auth_server.host, port=settings.auth_server.port)


if __name__ == "__main__":
    main()
