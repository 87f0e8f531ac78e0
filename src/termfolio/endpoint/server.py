"""FastAPI HTTP server for the web terminal.

Receives keystrokes over HTTP and feeds them to a single
:class:`TerminalSession` whose output lands in a :class:`ScreenBuffer`.
Clients read the rendered screen back with ``GET /screen`` or poll the
raw terminal data with ``GET /output``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI
from pydantic import BaseModel, Field

from termfolio.auth.client import CredentialService
from termfolio.auth.session import SessionStore
from termfolio.auth.token_store import MemoryTokenStore
from termfolio.config.settings import Settings, load_settings
from termfolio.terminal.keys import KEY_MAP, ctrl_key
from termfolio.terminal.screen import ScreenBuffer
from termfolio.terminal.session import TerminalSession

logger = logging.getLogger(__name__)


class KeystrokeRequest(BaseModel):
    key: str = Field(description="Key name (e.g., 'Enter', 'Tab', 'a')")


class KeyComboRequest(BaseModel):
    modifiers: list[str] = Field(description="Modifier keys (e.g., ['ctrl'])")
    key: str = Field(description="Main key in the combination")


class InputRequest(BaseModel):
    data: str = Field(description="Raw terminal data, as a browser terminal emits it")


class EndpointStatus(BaseModel):
    status: str = "ok"
    authenticated: bool = False
    busy: bool = False


def build_terminal(
    settings: Settings,
    service: CredentialService | None = None,
) -> tuple[TerminalSession, ScreenBuffer]:
    """Create a terminal drawing into a fresh screen buffer.

    The browser terminal keeps its tokens in memory; only the TTY shell
    persists them to disk.
    """
    ep = settings.endpoint
    screen = ScreenBuffer(
        rows=ep.rows,
        cols=ep.cols,
        scrollback_lines=ep.scrollback_lines,
        output_limit=ep.output_limit,
    )
    if service is None:
        service = CredentialService(
            base_url=settings.credentials.base_url,
            timeout=settings.credentials.timeout,
        )
    store = SessionStore(service, tokens=MemoryTokenStore())
    terminal = TerminalSession(
        screen,
        store,
        content=settings.content,
        host=settings.terminal.prompt_host,
        colors=settings.terminal.colors,
        history_limit=settings.terminal.history_limit,
        show_banner=settings.terminal.show_banner,
    )
    return terminal, screen


def create_app(
    terminal: TerminalSession | None = None,
    screen: ScreenBuffer | None = None,
    settings: Settings | None = None,
    service: CredentialService | None = None,
    restore: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Pass ``terminal`` and ``screen`` together to serve an existing
    terminal; otherwise one is built from ``settings`` at startup.
    """
    settings = settings if settings is not None else Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Startup
        owned = app.state.terminal is None
        if owned:
            app.state.service = service or CredentialService(
                base_url=settings.credentials.base_url,
                timeout=settings.credentials.timeout,
            )
            app.state.terminal, app.state.screen = build_terminal(settings, app.state.service)
        t: TerminalSession = app.state.terminal
        await t.start(restore=restore)
        logger.info("Web terminal started")
        yield
        # Shutdown
        await t.wait_idle()
        t.close()
        if owned:
            await app.state.service.disconnect()
        logger.info("Web terminal stopped")

    app = FastAPI(
        title="termfolio Web Terminal",
        description="HTTP endpoint driving an in-memory termfolio terminal",
        version="0.1.0",
        lifespan=lifespan,
    )

    if terminal is not None and screen is None:
        raise ValueError("A terminal passed to create_app needs its screen buffer")
    app.state.terminal = terminal
    app.state.screen = screen

    async def feed(data: str, wait: bool) -> None:
        t: TerminalSession = app.state.terminal
        t.dispatch_keystroke(data)
        if wait:
            await t.wait_idle()

    @app.get("/health")
    async def health_check() -> EndpointStatus:
        t: TerminalSession | None = app.state.terminal
        if t is None:
            return EndpointStatus(status="starting")
        return EndpointStatus(
            status="ok",
            authenticated=t.store.session.is_authenticated,
            busy=t.is_busy(),
        )

    @app.post("/keystroke")
    async def receive_keystroke(request: KeystrokeRequest, wait: bool = True) -> dict[str, str]:
        key = request.key
        char = KEY_MAP.get(key, key if len(key) == 1 else None)
        if char is None:
            return {"status": "ignored", "reason": f"Unknown key: {key}"}
        await feed(char, wait)
        return {"status": "ok", "key": key}

    @app.post("/input")
    async def receive_input(request: InputRequest, wait: bool = True) -> dict[str, str]:
        await feed(request.data, wait)
        return {"status": "ok", "length": str(len(request.data))}

    @app.post("/key-combo")
    async def receive_key_combo(request: KeyComboRequest, wait: bool = True) -> dict[str, str]:
        if "ctrl" in [m.lower() for m in request.modifiers]:
            char = ctrl_key(request.key)
            if char is not None:
                await feed(char, wait)
                return {"status": "ok", "combo": f"ctrl+{request.key}"}
        return {"status": "ignored", "reason": "Unsupported combo"}

    @app.get("/screen")
    async def get_screen_content() -> dict[str, str]:
        t: TerminalSession = app.state.terminal
        return {
            "content": app.state.screen.get_screen_content(),
            "prompt": t.prompt_text(),
        }

    @app.get("/output")
    async def get_output() -> dict[str, str]:
        """Terminal data written since the previous call."""
        return {"data": app.state.screen.take_output()}

    return app


def main() -> None:
    """Entry point for running the web terminal standalone."""
    settings = load_settings()
    app = create_app(settings=settings)
    uvicorn.run(app, host=settings.endpoint.host, port=settings.endpoint.port)


if __name__ == "__main__":
    main()
