"""Fan-out of broker notifications to connected observer sessions."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

LOGGER = logging.getLogger(__name__)

OBSERVER_QUEUE_SIZE = 10

_CLOSED = object()


class ObserverSession:
	"""One connected observer and its bounded outbound queue.

	Only the broker writes to the queue and only the session's own delivery
	loop drains it.
	"""

	def __init__(self, identity: str, maxsize: int = OBSERVER_QUEUE_SIZE) -> None:
		self.identity = identity
		self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
		self.closed = False

	def offer(self, message: str) -> bool:
		"""Enqueue without blocking; return False when the message was dropped."""
		if self.closed:
			return False
		try:
			self.queue.put_nowait(message)
		except asyncio.QueueFull:
			return False
		return True

	def close(self) -> None:
		"""Wake the delivery loop and make it terminate."""
		if self.closed:
			return
		self.closed = True
		if self.queue.full():
			# Pending messages are worthless once the session is closing.
			self.queue.get_nowait()
		self.queue.put_nowait(_CLOSED)

	async def receive(self, timeout: Optional[float] = None) -> Optional[str]:
		"""Return the next message, or None once the session is closed.

		Raises:
			asyncio.TimeoutError: If nothing arrived within `timeout` seconds.
		"""
		if timeout is None:
			item = await self.queue.get()
		else:
			item = await asyncio.wait_for(self.queue.get(), timeout)
		if item is _CLOSED:
			return None
		return item


class ObserverRegistry:
	"""Map observer identities to their sessions.

	All mutation happens on the event loop thread; broadcast iterates over a
	snapshot so sessions may come and go while it runs.
	"""

	def __init__(self, queue_size: int = OBSERVER_QUEUE_SIZE) -> None:
		self.queue_size = queue_size
		self._sessions: Dict[str, ObserverSession] = {}

	def __len__(self) -> int:
		return len(self._sessions)

	def __contains__(self, identity: object) -> bool:
		return identity in self._sessions

	def register(self, identity: str) -> ObserverSession:
		"""Create the session for a newly connected observer."""
		previous = self._sessions.pop(identity, None)
		if previous is not None:
			previous.close()
		session = ObserverSession(identity, maxsize=self.queue_size)
		self._sessions[identity] = session
		LOGGER.info("Observer %s registered (%d connected)", identity, len(self._sessions))
		return session

	def unregister(self, identity: str) -> None:
		"""Forget an observer and close its queue."""
		session = self._sessions.pop(identity, None)
		if session is None:
			return
		session.close()
		LOGGER.info("Observer %s unregistered (%d connected)", identity, len(self._sessions))

	def broadcast(self, message: str) -> int:
		"""Offer `message` to every observer; return how many accepted it.

		Observers whose queue is full simply miss the message.
		"""
		delivered = 0
		for identity, session in list(self._sessions.items()):
			if session.offer(message):
				delivered += 1
			else:
				LOGGER.warning("Observer %s queue is full, dropping message", identity)
		return delivered

	def close_all(self) -> None:
		"""Close every session, used on broker shutdown."""
		sessions = list(self._sessions.values())
		self._sessions.clear()
		for session in sessions:
			session.close()
