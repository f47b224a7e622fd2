"""Translate broker operations into HTTP responses."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator
from uuid import uuid4

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from models.prompt_models import OutcomeKind
from services.broker.events import sse_comment, sse_frame
from services.broker.prompt_broker import PromptBroker
from services.errors import PromptConflictError

LOGGER = logging.getLogger(__name__)

KEEPALIVE_INTERVAL = 15.0

_OUTCOME_STATUS = {
	OutcomeKind.ANSWERED: 200,
	OutcomeKind.TIMED_OUT: 504,
	OutcomeKind.FAILED: 500,
}


def get_broker(request: Request) -> PromptBroker:
	"""Retrieve the shared broker from the app state."""
	broker = getattr(request.app.state, "broker", None)
	if broker is None:
		raise HTTPException(status_code=500, detail="Prompt broker not initialized.")
	return broker


def error_response(status_code: int, message: str) -> JSONResponse:
	return JSONResponse({"error": message}, status_code=status_code)


async def trigger_prompt(broker: PromptBroker, prompt: str, title: str, timeout_ms: int) -> JSONResponse:
	"""Run one prompt transaction and report how it ended.

	Returns:
		200 with the answer, 409 when another prompt is active, 504 on
		timeout, 500 when the transaction failed.
	"""
	request = broker.new_request(prompt, title, timeout_ms)
	LOGGER.info("Prompt request: title=%r timeout=%dms", request.title, timeout_ms)
	try:
		outcome = await broker.trigger(request)
	except PromptConflictError as exc:
		return error_response(409, str(exc))

	status_code = _OUTCOME_STATUS[outcome.kind]
	if outcome.kind is OutcomeKind.ANSWERED:
		return JSONResponse({"input": outcome.text}, status_code=status_code)
	return error_response(status_code, outcome.error or "Prompt failed")


def submit_input(broker: PromptBroker, text: str) -> JSONResponse:
	"""Hand a human answer to the active prompt; 409 when it cannot be accepted."""
	try:
		broker.submit(text)
	except PromptConflictError as exc:
		return error_response(409, str(exc))
	return JSONResponse({"ok": True, "message": "Input received by server."})


def observer_identity(request: Request) -> str:
	"""Derive an opaque identity for one observer connection."""
	client = request.client
	address = f"{client.host}:{client.port}" if client else "unknown"
	return f"{address}/{uuid4().hex[:8]}"


async def observer_events(
	request: Request,
	broker: PromptBroker,
	keepalive: float = KEEPALIVE_INTERVAL,
) -> AsyncIterator[str]:
	"""Yield server-sent events for one observer until it goes away."""
	identity = observer_identity(request)
	session = broker.connect(identity)
	try:
		while True:
			try:
				message = await session.receive(timeout=keepalive)
			except asyncio.TimeoutError:
				if await request.is_disconnected():
					LOGGER.info("Observer %s went away", identity)
					break
				yield sse_comment()
				continue
			if message is None:
				LOGGER.info("Observer %s stream closed by the broker", identity)
				break
			yield sse_frame(message)
	finally:
		broker.disconnect(identity)
