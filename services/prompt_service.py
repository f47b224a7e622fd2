"""Serialize prompts through a dialog backend and race them against a deadline."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from models.prompt_models import DEFAULT_TITLE, PromptOptions
from services.dialog.provider import DialogProvider
from services.errors import PromptCancelledError, PromptError, PromptTimedOutError

LOGGER = logging.getLogger(__name__)

DEFAULT_MESSAGE = "The assistant is requesting additional input"


def _discard_result(task: asyncio.Task) -> None:
    """Consume the outcome of an abandoned dialog call."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        LOGGER.debug("Abandoned dialog call finished with %r", exc)


class PromptService:
    """Solicit one answer at a time from a dialog backend."""

    def __init__(
        self,
        dialog: Optional[DialogProvider] = None,
        timeout: float = 0.0,
        default_message: str = "",
    ) -> None:
        """Create the service.

        Args:
            dialog: Backend used to show prompts; a local desktop dialog by default.
            timeout: Default upper bound on each wait in seconds; the backend default when unset.
            default_message: Prompt text used when a call supplies none.
        """
        if dialog is None:
            from services.dialog.zenity_dialog import ZenityDialog

            dialog = ZenityDialog()
        self.dialog = dialog
        self.timeout = timeout if timeout and timeout > 0 else dialog.default_timeout
        self.default_message = default_message or DEFAULT_MESSAGE
        self._lock = asyncio.Lock()

    async def prompt_for_input(self, options: Optional[PromptOptions] = None, *, deadline: Optional[float] = None) -> str:
        """Show a prompt and return the human's answer.

        The wait is bounded by the earliest of the caller `deadline` (a
        `time.monotonic()` value), `options.timeout` and the service timeout.
        Concurrent callers queue until the previous prompt finished.

        Raises:
            PromptTimedOutError: If the bound elapsed before an answer arrived.
            PromptCancelledError: If the backend call was cancelled underneath us.
            PromptError: Any backend failure, wrapped with context but keeping its kind.
        """
        options = options or PromptOptions()
        async with self._lock:
            title = options.title or DEFAULT_TITLE
            prompt = options.prompt or options.default_message or self.default_message

            timeout = self.timeout
            if options.timeout and options.timeout > 0:
                timeout = min(timeout, options.timeout)
            now = time.monotonic()
            effective = now + timeout
            caller_bound = deadline is not None and deadline <= effective
            if caller_bound:
                if deadline <= now:
                    raise PromptTimedOutError("caller deadline already expired before prompting")
                effective = deadline

            LOGGER.info("Prompting for input: title=%r wait=%.3fs", title, effective - now)
            task = asyncio.create_task(self.dialog.show_input_dialog(prompt, title, deadline=effective))
            try:
                done, _ = await asyncio.wait({task}, timeout=max(0.0, effective - time.monotonic()))
            except asyncio.CancelledError:
                task.cancel()
                task.add_done_callback(_discard_result)
                raise

            if task not in done:
                task.cancel()
                task.add_done_callback(_discard_result)
                if caller_bound:
                    LOGGER.warning("Caller deadline exceeded while waiting for input")
                    raise PromptTimedOutError("caller deadline exceeded while waiting for input")
                LOGGER.warning("Prompt timed out after %gs", timeout)
                raise PromptTimedOutError(f"prompt timed out after {timeout:g}s")

            try:
                return task.result()
            except asyncio.CancelledError as exc:
                raise PromptCancelledError("prompt was cancelled before an answer arrived") from exc
            except PromptError as exc:
                LOGGER.error("Error getting user input: %s", exc)
                raise exc.with_context("input dialog failed") from exc
