"""Configuration loading utilities for ssh-conninfo."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .ssh.session import DEFAULT_PROXY_COMMAND

# Load .env file if it exists
load_dotenv()

_DEFAULT_CONFIG_PATH = Path("config/default_config.json")

ENV_PREFIX = "SSH_CONNINFO_"


@dataclass
class ConnectionDefaults:
    """Defaults for the target server and its credentials."""

    host: Optional[str] = None
    port: int = 22
    username: Optional[str] = None
    password: Optional[str] = None
    key_path: Optional[str] = None
    passphrase: Optional[str] = None
    combined_auth: bool = False
    timeout: int = 20


@dataclass
class ProxyDefaults:
    """Proxy routing defaults; an empty host disables the proxy."""

    host: str = ""
    type: str = "HTTP"
    port: int = 8080
    username: Optional[str] = None
    password: Optional[str] = None
    command_template: str = DEFAULT_PROXY_COMMAND


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class AppConfig:
    """Top-level configuration."""

    connection: ConnectionDefaults = field(default_factory=ConnectionDefaults)
    proxy: ProxyDefaults = field(default_factory=ProxyDefaults)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AppConfig":
        connection_payload = _strip_comments(payload.get("connection", {}) or {})
        proxy_payload = _strip_comments(payload.get("proxy", {}) or {})
        logging_payload = _strip_comments(payload.get("logging", {}) or {})
        return cls(
            connection=ConnectionDefaults(
                **{**ConnectionDefaults().__dict__, **connection_payload}
            ),
            proxy=ProxyDefaults(**{**ProxyDefaults().__dict__, **proxy_payload}),
            logging=LoggingConfig(**{**LoggingConfig().__dict__, **logging_payload}),
        )


def _strip_comments(section: Dict[str, Any]) -> Dict[str, Any]:
    # Keys starting with an underscore are comments.
    return {k: v for k, v in section.items() if not k.startswith("_")}


def _env(name: str) -> Optional[str]:
    return os.getenv(ENV_PREFIX + name) or None


def _env_int(name: str) -> Optional[int]:
    value = _env(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {value!r}") from None


def apply_env_overrides(config: AppConfig) -> AppConfig:
    """Apply ``SSH_CONNINFO_*`` environment variables on top of ``config``."""
    conn = config.connection
    for attr, name in (
        ("host", "HOST"),
        ("username", "USERNAME"),
        ("password", "PASSWORD"),
        ("key_path", "KEY_PATH"),
        ("passphrase", "PASSPHRASE"),
    ):
        value = _env(name)
        if value:
            setattr(conn, attr, value)

    env_port = _env_int("PORT")
    if env_port is not None:
        conn.port = env_port

    env_timeout = _env_int("TIMEOUT")
    if env_timeout is not None:
        conn.timeout = env_timeout

    proxy = config.proxy
    for attr, name in (
        ("host", "PROXY_HOST"),
        ("type", "PROXY_TYPE"),
        ("username", "PROXY_USERNAME"),
        ("password", "PROXY_PASSWORD"),
    ):
        value = _env(name)
        if value:
            setattr(proxy, attr, value)

    env_proxy_port = _env_int("PROXY_PORT")
    if env_proxy_port is not None:
        proxy.port = env_proxy_port

    env_level = _env("LOG_LEVEL")
    if env_level:
        config.logging.level = env_level.upper()
    return config


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load configuration from `path` or the default location.

    An explicit `path` must exist. Without one, `config/default_config.json`
    is used when present, otherwise built-in defaults. Environment variables
    (higher priority than the file):
    - SSH_CONNINFO_HOST / _PORT / _USERNAME / _PASSWORD / _TIMEOUT
    - SSH_CONNINFO_KEY_PATH / _PASSPHRASE
    - SSH_CONNINFO_PROXY_HOST / _PROXY_TYPE / _PROXY_PORT
    - SSH_CONNINFO_PROXY_USERNAME / _PROXY_PASSWORD
    - SSH_CONNINFO_LOG_LEVEL
    """
    if path:
        candidate = Path(path)
        if not candidate.is_file():
            raise FileNotFoundError(f"Could not find configuration file: {candidate}")
    else:
        candidate = _DEFAULT_CONFIG_PATH

    if candidate.is_file():
        with candidate.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        config = AppConfig.from_dict(data)
    else:
        config = AppConfig()

    return apply_env_overrides(config)
