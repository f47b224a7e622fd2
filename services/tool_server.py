"""Expose the prompt service as a `user_prompt` tool over MCP."""

from __future__ import annotations

import logging
from typing import Annotated

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from models.prompt_models import PromptOptions
from services.errors import PromptError
from services.prompt_service import PromptService

LOGGER = logging.getLogger(__name__)

SERVER_NAME = "User Prompt MCP"
USER_PROMPT_TOOL = "user_prompt"
USER_PROMPT_DESCRIPTION = "Request additional input from the user during generation"


async def handle_user_prompt(service: PromptService, prompt: str, title: str = "") -> str:
    """Ask the human through `service` and return their answer as tool output.

    Raises:
        ToolError: If no answer could be obtained; the server keeps running.
    """
    LOGGER.info("User prompt request: prompt=%r, title=%r", prompt, title)
    try:
        text = await service.prompt_for_input(PromptOptions(prompt=prompt, title=title))
    except PromptError as exc:
        LOGGER.error("Error getting user input: %s", exc)
        raise ToolError(f"failed to get user input: {exc}") from exc
    LOGGER.info("User provided input: %r", text)
    return text


def create_tool_server(service: PromptService) -> FastMCP:
    """Build the MCP server with the `user_prompt` tool registered."""
    server = FastMCP(SERVER_NAME)

    @server.tool(name=USER_PROMPT_TOOL, description=USER_PROMPT_DESCRIPTION)
    async def user_prompt(
        prompt: Annotated[str, Field(description="The prompt to display to the user")],
        title: Annotated[str, Field(description="The title of the dialog window (optional)")] = "",
    ) -> str:
        return await handle_user_prompt(service, prompt, title)

    LOGGER.info("Registered tool: %s", USER_PROMPT_TOOL)
    return server
