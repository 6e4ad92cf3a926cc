"""Cancellable repeating timer used by the polling fallbacks."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RepeatingTimer:
	"""Call ``function`` every ``interval`` seconds on a daemon thread until cancelled.

	Errors raised by ``function`` are logged and the loop keeps going; one
	failed poll must not end the subscription.
	"""

	def __init__(self, interval: float, function: Callable[[], None], *, name: Optional[str] = None, run_immediately: bool = False):
		if interval <= 0:
			raise ValueError("interval must be positive")
		self.interval = float(interval)
		self.function = function
		self.name = name or getattr(function, "__name__", "repeating-timer")
		self.run_immediately = run_immediately
		self._stopped = threading.Event()
		self._thread: Optional[threading.Thread] = None

	def _tick(self) -> None:
		try:
			self.function()
		except Exception:
			logger.exception("Repeating timer %s tick failed", self.name)

	def _run(self) -> None:
		if self.run_immediately and not self._stopped.is_set():
			self._tick()
		while not self._stopped.wait(self.interval):
			self._tick()

	def start(self) -> "RepeatingTimer":
		if self._thread is not None:
			return self
		self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
		self._thread.start()
		return self

	def cancel(self) -> None:
		self._stopped.set()

	def join(self, timeout: Optional[float] = None) -> None:
		if self._thread is not None and self._thread is not threading.current_thread():
			self._thread.join(timeout)

	@property
	def is_running(self) -> bool:
		return self._thread is not None and self._thread.is_alive() and not self._stopped.is_set()
