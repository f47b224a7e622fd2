"""Notification payloads pushed to observers over the event stream."""

from __future__ import annotations

import json

from models.prompt_models import PromptRequest


def prompt_event(request: PromptRequest) -> str:
	"""Return the notification announcing an available prompt."""
	return json.dumps({"type": "prompt", "prompt": request.text, "title": request.title})


def close_event(reason: str) -> str:
	"""Return the notification telling observers to hide the form."""
	return json.dumps({"type": "close", "reason": reason})


def sse_frame(message: str) -> str:
	"""Frame a JSON message as a server-sent event."""
	return f"data: {message}\n\n"


def sse_comment(text: str = "keep-alive") -> str:
	return f": {text}\n\n"
