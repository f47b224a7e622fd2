"""Prompt domain models shared by the broker and the prompt service."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

DEFAULT_TITLE = "User Input Required"


class TransactionState(str, Enum):
	"""Lifecycle of a single prompt transaction."""

	IDLE = "idle"
	ACTIVE = "active"
	RESOLVED = "resolved"


class OutcomeKind(str, Enum):
	"""How a transaction was resolved."""

	ANSWERED = "answered"
	TIMED_OUT = "timed_out"
	FAILED = "failed"


@dataclass(frozen=True)
class PromptRequest:
	"""One request for free-text input, immutable once created."""

	text: str
	title: str
	timeout: float
	created_at: float = field(default_factory=time.monotonic)

	@property
	def deadline(self) -> float:
		return self.created_at + self.timeout

	def remaining(self) -> float:
		"""Seconds left before the deadline, never negative."""
		return max(0.0, self.deadline - time.monotonic())


@dataclass
class PromptTransaction:
	"""Broker-owned state for the prompt currently being answered.

	`answer` and `error` are single-assignment slots: whichever is set first,
	or the request deadline, resolves the transaction.
	"""

	request: PromptRequest
	answer: asyncio.Future = field(default_factory=lambda: asyncio.get_running_loop().create_future())
	error: asyncio.Future = field(default_factory=lambda: asyncio.get_running_loop().create_future())
	state: TransactionState = TransactionState.IDLE

	@property
	def is_active(self) -> bool:
		return self.state is TransactionState.ACTIVE


@dataclass(frozen=True)
class TriggerOutcome:
	"""Result handed back to whoever triggered a transaction."""

	kind: OutcomeKind
	text: str = ""
	error: Optional[str] = None


@dataclass
class PromptOptions:
	"""Per-call overrides; empty values fall back to service defaults.

	Attributes:
		prompt: Text displayed to the human.
		title: Dialog caption.
		timeout: Upper bound on the wait in seconds (0 means unset).
		default_message: Text used when `prompt` is empty.
	"""

	prompt: str = ""
	title: str = ""
	timeout: float = 0.0
	default_message: str = ""
