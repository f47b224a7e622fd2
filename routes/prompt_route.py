"""FastAPI routes for triggering prompts and submitting answers."""

from fastapi import APIRouter, Request
from pydantic import BaseModel

from controllers.prompt_controller import get_broker, submit_input, trigger_prompt

router = APIRouter()


class TriggerPromptPayload(BaseModel):
    prompt: str = ""
    title: str = ""
    timeout_ms: int = 0


class SubmitInputPayload(BaseModel):
    input: str = ""


@router.post("/api/trigger-prompt", summary="Show a prompt to observers and wait for the answer")
async def trigger_prompt_route(request: Request, payload: TriggerPromptPayload):
    """Block until an observer answers, the prompt times out, or it fails.

    Args:
        request: The FastAPI request containing application state.
        payload: Prompt text, dialog title and timeout in milliseconds.

    Returns:
        `{"input": ...}` on success, otherwise `{"error": ...}` with 409, 504 or 500.
    """
    broker = get_broker(request)
    return await trigger_prompt(broker, payload.prompt, payload.title, payload.timeout_ms)


@router.post("/submit-input")
async def submit_input_route(request: Request, payload: SubmitInputPayload):
    """Accept the human answer for the active prompt."""
    return submit_input(get_broker(request), payload.input)
