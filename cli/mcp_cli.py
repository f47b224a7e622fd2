"""Console entry point for the MCP tool server (`user-prompt-mcp`)."""

from __future__ import annotations

import logging
from typing import Optional

import typer

from services.dialog.provider import build_dialog
from services.errors import DependencyError
from services.prompt_service import PromptService
from services.tool_server import create_tool_server
from utils.logging_setup import configure_logging
from utils.settings import load_settings

LOGGER = logging.getLogger(__name__)

app = typer.Typer(add_completion=False, help="Let an agent ask the user for input over MCP stdio.")


@app.command()
def serve(
    timeout: int = typer.Option(0, "--timeout", help="Timeout in seconds for user input (default: backend specific)."),
    backend: Optional[str] = typer.Option(None, "--backend", help="Dialog backend: local or remote."),
    server_url: Optional[str] = typer.Option(None, "--server-url", help="Base URL of the user prompt server."),
) -> None:
    """Check the dialog backend, then serve the `user_prompt` tool on stdio."""
    settings = load_settings()
    configure_logging("UserPromptMCP", settings.log_level)
    LOGGER.info("Starting User Prompt MCP Server...")

    try:
        dialog = build_dialog(backend or settings.backend, server_url or settings.server_url)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    try:
        dialog.check_dependencies()
    except DependencyError as exc:
        LOGGER.critical("Dependency check failed: %s", exc)
        raise typer.Exit(code=1) from exc

    service = PromptService(dialog, timeout=timeout if timeout > 0 else settings.timeout)
    LOGGER.info("Prompt service initialized with timeout: %gs", service.timeout)

    server = create_tool_server(service)
    LOGGER.info("Server starting. Waiting for requests...")
    server.run(transport="stdio")


if __name__ == "__main__":
    app()
