"""Dialog backend that delegates the prompt to a remote broker over HTTP."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import httpx

from services.dialog.provider import DialogProvider
from services.errors import (
    BackendUnavailableError,
    DeadlineExceededError,
    MalformedResponseError,
    PromptConflictError,
    PromptTimedOutError,
    RemotePromptError,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_REMOTE_TIMEOUT = 20 * 60.0
TRIGGER_PATH = "/api/trigger-prompt"
CONNECT_TIMEOUT = 10.0
# Extra time granted to the HTTP call so the broker's own deadline answer can arrive.
RESPONSE_GRACE = 1.0

_STATUS_ERRORS = {
    409: PromptConflictError,
    504: PromptTimedOutError,
}


class RemoteDialog(DialogProvider):
    """Ask a user-prompt server to show the prompt to its observers."""

    default_timeout = DEFAULT_REMOTE_TIMEOUT

    def __init__(self, server_url: str, client: Optional[httpx.AsyncClient] = None) -> None:
        """Create the backend.

        Args:
            server_url: Base URL of the broker, e.g. "http://localhost:3030".
            client: Optional shared HTTP client; a short-lived one is used per call otherwise.
        """
        self.server_url = server_url.rstrip("/")
        self.client = client

    async def show_input_dialog(self, prompt: str, title: str, *, deadline: Optional[float] = None) -> str:
        """Send the prompt to the broker and wait for its answer.

        Raises:
            DeadlineExceededError: If the deadline already passed or elapsed in flight.
            BackendUnavailableError: If the broker cannot be reached.
            MalformedResponseError: If the broker answered with an undecodable payload.
            PromptConflictError: If the broker is busy with another prompt.
            PromptTimedOutError: If the broker gave up waiting for the human.
            RemotePromptError: For any other error reported by the broker.
        """
        if deadline is None:
            remaining = DEFAULT_REMOTE_TIMEOUT
            LOGGER.warning("No deadline for remote prompt, using default timeout of %.0fs", remaining)
        else:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise DeadlineExceededError("prompt deadline already expired before calling remote server")

        timeout_ms = int(remaining * 1000)
        if timeout_ms <= 0:
            raise DeadlineExceededError(f"prompt deadline resulted in non-positive timeout: {timeout_ms}ms")

        payload = {"prompt": prompt, "title": title, "timeout_ms": timeout_ms}
        url = self.server_url + TRIGGER_PATH
        LOGGER.info("Sending prompt request to %s with timeout %dms", url, timeout_ms)

        try:
            response = await asyncio.wait_for(self._post(url, payload, remaining), remaining + RESPONSE_GRACE)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            LOGGER.error("Prompt request to %s timed out", url)
            raise DeadlineExceededError("prompt request to server timed out") from exc
        except httpx.TransportError as exc:
            LOGGER.error("Error sending prompt request to %s: %s", url, exc)
            raise BackendUnavailableError(f"failed to send prompt request to server: {exc}") from exc

        return self._interpret(response)

    async def _post(self, url: str, payload: Dict[str, Any], remaining: float) -> httpx.Response:
        timeout = httpx.Timeout(None, connect=min(CONNECT_TIMEOUT, remaining))
        if self.client is not None:
            return await self.client.post(url, json=payload, timeout=timeout)
        async with httpx.AsyncClient(timeout=timeout) as client:
            return await client.post(url, json=payload)

    @staticmethod
    def _interpret(response: httpx.Response) -> str:
        """Turn the broker response into the answer text or a typed error."""
        status = response.status_code
        body = response.text
        LOGGER.info("Received response from server: status=%s body=%s", status, body)

        try:
            data = response.json()
        except ValueError:
            data = None

        if not isinstance(data, dict):
            if response.is_success:
                raise MalformedResponseError(f"failed to decode server response (body: {body})")
            error_cls = _STATUS_ERRORS.get(status, RemotePromptError)
            raise error_cls(f"server returned error: status {status}, body: {body}")

        error = data.get("error")
        if not response.is_success:
            error_cls = _STATUS_ERRORS.get(status, RemotePromptError)
            if error:
                raise error_cls(f"server error: {error} (status {status})")
            raise error_cls(f"server returned non-OK status: {status}, with body: {body}")

        if error:
            raise RemotePromptError(f"prompt failed on server: {error}")

        text = data.get("input", "")
        if not isinstance(text, str):
            raise MalformedResponseError(f"server response has a non-text input (body: {body})")
        return text
