"""Arbitrate the single active prompt between one caller and many observers."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Optional

from models.prompt_models import (
	DEFAULT_TITLE,
	OutcomeKind,
	PromptRequest,
	PromptTransaction,
	TransactionState,
	TriggerOutcome,
)
from services.broker.events import close_event, prompt_event
from services.broker.observer_registry import ObserverRegistry, ObserverSession
from services.errors import NoActivePromptError, PromptConflictError

LOGGER = logging.getLogger(__name__)

DEFAULT_BROKER_TIMEOUT = 20 * 60.0
TIMEOUT_MESSAGE = "Prompt timed out"
CONFLICT_MESSAGE = "Another prompt is already active"
NO_ACTIVE_MESSAGE = "No active prompt or prompt already handled"
ALREADY_ANSWERED_MESSAGE = "Input already submitted for the active prompt"


class PromptBroker:
	"""Own at most one active prompt transaction and the observers watching it.

	The lock only guards the transaction slot; waiting for an answer happens
	outside of it so submissions and observer connections are never blocked
	by a pending prompt.
	"""

	def __init__(
		self,
		registry: Optional[ObserverRegistry] = None,
		default_timeout: float = DEFAULT_BROKER_TIMEOUT,
	) -> None:
		self.registry = registry if registry is not None else ObserverRegistry()
		self.default_timeout = default_timeout
		self._lock = threading.Lock()
		self._current: Optional[PromptTransaction] = None

	@property
	def active_request(self) -> Optional[PromptRequest]:
		"""The request currently waiting for an answer, if any."""
		with self._lock:
			if self._current is not None and self._current.is_active:
				return self._current.request
			return None

	def new_request(self, text: str, title: str, timeout_ms: int = 0) -> PromptRequest:
		"""Build a request, falling back to the broker default when no timeout is given."""
		timeout = timeout_ms / 1000.0 if timeout_ms and timeout_ms > 0 else self.default_timeout
		return PromptRequest(text=text, title=title or DEFAULT_TITLE, timeout=timeout)

	async def trigger(self, request: PromptRequest) -> TriggerOutcome:
		"""Publish `request` to observers and wait for the first resolution.

		Raises:
			PromptConflictError: If another prompt is still active.
		"""
		with self._lock:
			if self._current is not None and self._current.is_active:
				LOGGER.warning("Rejecting prompt %r: another prompt is already active", request.title)
				raise PromptConflictError(CONFLICT_MESSAGE)
			transaction = PromptTransaction(request=request)
			transaction.state = TransactionState.ACTIVE
			self._current = transaction

		LOGGER.info("Prompt activated: title=%r timeout=%.3fs", request.title, request.timeout)
		delivered = self.registry.broadcast(prompt_event(request))
		LOGGER.info("Prompt announced to %d observer(s)", delivered)

		outcome: Optional[TriggerOutcome] = None
		try:
			await asyncio.wait(
				{transaction.answer, transaction.error},
				timeout=request.remaining(),
				return_when=asyncio.FIRST_COMPLETED,
			)
			outcome = self._resolve(transaction)
		finally:
			if outcome is None:
				# The triggering task was cancelled before the prompt resolved.
				self._resolve(transaction, cancelled=True)
		return outcome

	def _resolve(self, transaction: PromptTransaction, cancelled: bool = False) -> TriggerOutcome:
		"""Mark `transaction` resolved and pick its outcome, answer first."""
		with self._lock:
			transaction.state = TransactionState.RESOLVED
			if self._current is transaction:
				self._current = None
			if transaction.answer.done():
				outcome = TriggerOutcome(kind=OutcomeKind.ANSWERED, text=transaction.answer.result())
				reason = "answered"
			elif transaction.error.done():
				outcome = TriggerOutcome(kind=OutcomeKind.FAILED, error=str(transaction.error.result()))
				reason = "error"
			elif cancelled:
				outcome = TriggerOutcome(kind=OutcomeKind.FAILED, error="Prompt cancelled")
				reason = "cancelled"
			else:
				outcome = TriggerOutcome(kind=OutcomeKind.TIMED_OUT, error=TIMEOUT_MESSAGE)
				reason = "timeout"

		if outcome.kind is OutcomeKind.ANSWERED:
			LOGGER.info("Prompt %r answered", transaction.request.title)
		elif outcome.kind is OutcomeKind.TIMED_OUT:
			LOGGER.warning("Prompt %r timed out after %.3fs", transaction.request.title, transaction.request.timeout)
		else:
			LOGGER.error("Prompt %r failed: %s", transaction.request.title, outcome.error)
		self.registry.broadcast(close_event(reason))
		return outcome

	def submit(self, answer: str) -> None:
		"""Record the human answer for the active prompt.

		Raises:
			NoActivePromptError: If no prompt is waiting for input.
			PromptConflictError: If the active prompt already has an answer.
		"""
		with self._lock:
			transaction = self._current
			if transaction is None or not transaction.is_active:
				LOGGER.info("Received input but no prompt is active")
				raise NoActivePromptError(NO_ACTIVE_MESSAGE)
			if transaction.answer.done():
				LOGGER.info("Received a second input for the active prompt")
				raise PromptConflictError(ALREADY_ANSWERED_MESSAGE)
			transaction.answer.set_result(answer)
		LOGGER.info("Accepted input for prompt %r", transaction.request.title)

	def fail_active(self, message: str) -> bool:
		"""Resolve the active prompt with an error; return False if none was pending."""
		with self._lock:
			transaction = self._current
			if transaction is None or not transaction.is_active:
				return False
			if transaction.answer.done() or transaction.error.done():
				return False
			transaction.error.set_result(message)
		return True

	def connect(self, identity: str) -> ObserverSession:
		"""Register an observer, replaying the active prompt to it."""
		with self._lock:
			session = self.registry.register(identity)
			if self._current is not None and self._current.is_active:
				LOGGER.info("Replaying active prompt to observer %s", identity)
				session.offer(prompt_event(self._current.request))
		return session

	def disconnect(self, identity: str) -> None:
		self.registry.unregister(identity)

	def shutdown(self) -> None:
		"""Fail any pending prompt and close every observer stream."""
		if self.fail_active("Prompt cancelled: server shutting down"):
			LOGGER.info("Cancelled the active prompt during shutdown")
		self.registry.close_all()
