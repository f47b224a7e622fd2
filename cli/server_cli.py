"""Console entry point for the user prompt broker (`user-prompt-server`)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from utils.logging_setup import configure_logging
from utils.settings import load_settings

LOGGER = logging.getLogger(__name__)

# Seconds uvicorn waits for open observer streams before forcing shutdown.
GRACEFUL_SHUTDOWN = 5

app = typer.Typer(add_completion=False, help="Serve prompts to browser observers over HTTP.")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Address to bind (default: USER_PROMPT_HOST or 0.0.0.0)."),
    port: Optional[int] = typer.Option(None, "--port", help="Port for the HTTP/S server (default: 3030)."),
    tls_cert_file: Optional[Path] = typer.Option(None, "--tls-cert-file", help="TLS certificate file (for HTTPS)."),
    tls_key_file: Optional[Path] = typer.Option(None, "--tls-key-file", help="TLS key file (for HTTPS)."),
) -> None:
    """Run the broker until interrupted."""
    settings = load_settings()
    configure_logging("UserPromptServer", settings.log_level)

    if (tls_cert_file is None) != (tls_key_file is None):
        raise typer.BadParameter("--tls-cert-file and --tls-key-file must be given together")

    from main import create_app

    bind_host = host or settings.host
    bind_port = port or settings.port
    scheme = "https" if tls_cert_file else "http"
    LOGGER.info("User prompt server starting on %s://%s:%d", scheme, bind_host, bind_port)
    uvicorn.run(
        create_app(),
        host=bind_host,
        port=bind_port,
        ssl_certfile=str(tls_cert_file) if tls_cert_file else None,
        ssl_keyfile=str(tls_key_file) if tls_key_file else None,
        log_level=settings.log_level.lower(),
        timeout_graceful_shutdown=GRACEFUL_SHUTDOWN,
    )
    LOGGER.info("Server gracefully stopped.")


if __name__ == "__main__":
    app()
