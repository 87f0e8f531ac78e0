"""Configuration management for termfolio.

Loads settings from a YAML configuration file with environment variable
overrides for sensitive values (the token signing secret). Supports .env
files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings

from termfolio.terminal.content import PortfolioContent

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/termfolio.yaml")


class TerminalConfig(BaseModel):
    prompt_host: str = Field(default="host", description="Host part of user@host:~$")
    colors: bool = Field(default=True, description="Emit ANSI colors in prompts and notices")
    history_limit: int | None = Field(default=500, gt=0)
    show_banner: bool = Field(default=True)


class CredentialsConfig(BaseModel):
    base_url: str = Field(default="http://localhost:3001/api")
    timeout: float = Field(default=10.0, gt=0)
    token_file: str | None = Field(
        default="~/.termfolio/session.json",
        description="Where the access token is persisted; None keeps it in memory",
    )
    restore_on_start: bool = Field(default=True)


class EndpointConfig(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8080, ge=1, le=65535)
    rows: int = Field(default=24, gt=0)
    cols: int = Field(default=80, gt=0)
    scrollback_lines: int = Field(default=1000, gt=0)
    output_limit: int = Field(
        default=256 * 1024,
        gt=0,
        description="Characters of raw output kept for GET /output between polls",
    )


class AuthServerConfig(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3001, ge=1, le=65535)
    issuer: str = Field(default="termfolio")
    audience: str = Field(default="termfolio-users")
    access_token_ttl: int = Field(default=24 * 60 * 60, gt=0, description="Seconds")
    refresh_token_ttl: int = Field(default=7 * 24 * 60 * 60, gt=0, description="Seconds")
    password_hasher: Literal["bcrypt", "simple"] = Field(default="bcrypt")
    jwt_secret: SecretStr = Field(
        default=SecretStr(""),
        description="HS256 signing secret, at least 32 characters",
    )


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for the termfolio system.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "TERMFOLIO_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # Configuration sections
    terminal: TerminalConfig = Field(default_factory=TerminalConfig)
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    endpoint: EndpointConfig = Field(default_factory=EndpointConfig)
    auth_server: AuthServerConfig = Field(default_factory=AuthServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    content: PortfolioContent = Field(default_factory=PortfolioContent)


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    # Load .env file manually for non-prefixed vars
    _load_dotenv()

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


def _load_dotenv() -> None:
    """Load .env file into os.environ if it exists."""
    env_path = Path(".env")
    if not env_path.exists():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()
                if not os.environ.get(key):
                    os.environ[key] = value


def _apply_env_overrides(yaml_data: dict) -> None:
    """Apply environment variable overrides for non-prefixed vars."""
    # JWT_SECRET / API_BASE_URL are the names the deployment scripts export
    jwt_secret = os.environ.get("JWT_SECRET", "")
    api_base_url = os.environ.get("API_BASE_URL", "")

    yaml_data.setdefault("auth_server", {})
    yaml_data.setdefault("credentials", {})

    if jwt_secret and not yaml_data["auth_server"].get("jwt_secret"):
        yaml_data["auth_server"]["jwt_secret"] = jwt_secret

    if api_base_url and not yaml_data["credentials"].get("base_url"):
        yaml_data["credentials"]["base_url"] = api_base_url
