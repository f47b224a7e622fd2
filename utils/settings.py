"""Process configuration read from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

LOGGER = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "http://localhost:3030"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3030


@dataclass
class Settings:
    """Configuration shared by the broker server and the tool server.

    Attributes:
        timeout: Default solicitation timeout in seconds (0 keeps the backend default).
        backend: Dialog backend name, "local" or "remote".
        server_url: Broker base URL used by the remote backend.
        host: Address the broker binds to.
        port: Port the broker listens on.
        log_level: Logging level name.
    """

    timeout: float = 0.0
    backend: str = "local"
    server_url: str = DEFAULT_SERVER_URL
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "INFO"


def _positive_number(raw: Optional[str], name: str) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        LOGGER.warning("Invalid %s value: %s", name, raw)
        return None
    if value <= 0:
        LOGGER.warning("Ignoring non-positive %s value: %s", name, raw)
        return None
    return value


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from `environ`, loading a .env file when reading os.environ."""
    if environ is None:
        load_dotenv()  # Load environment variables from .env file if present
        environ = os.environ

    settings = Settings()

    timeout = _positive_number(environ.get("USER_PROMPT_TIMEOUT"), "USER_PROMPT_TIMEOUT")
    if timeout is not None:
        settings.timeout = timeout

    backend = (environ.get("USER_PROMPT_BACKEND") or "").strip().lower()
    if backend:
        settings.backend = backend

    server_url = (environ.get("USER_PROMPT_SERVER_URL") or "").strip()
    if server_url:
        settings.server_url = server_url

    host = (environ.get("USER_PROMPT_HOST") or "").strip()
    if host:
        settings.host = host

    port = _positive_number(environ.get("USER_PROMPT_PORT"), "USER_PROMPT_PORT")
    if port is not None:
        settings.port = int(port)

    log_level = (environ.get("USER_PROMPT_LOG_LEVEL") or "").strip().upper()
    if log_level:
        settings.log_level = log_level

    return settings
