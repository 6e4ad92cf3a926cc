"""Per-institution notification feed.

:class:`NotificationFeed` keeps the newest-first list and unread counter the
bell and the notifications page show. Inserts and updates arrive through a
:class:`ChangeFeed` subscription scoped by a :class:`ResourceFilter`; a
repeating timer reconciles the unread counter with the server every 30
seconds, so a missed event heals itself.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional

from django.conf import settings
from django.utils import timezone

from blood.services.api import ApiError
from blood.utils.timers import RepeatingTimer

from .client import TABLE, Notification, NotificationApi

logger = logging.getLogger(__name__)

Handler = Callable[[Notification], None]
Unsubscribe = Callable[[], None]

EVENT_INSERT = 'insert'
EVENT_UPDATE = 'update'
EVENT_UNREAD = 'unread'


@dataclass(frozen=True)
class ResourceFilter:
	"""Equality filter on one column of a table, e.g. ``institution_id=eq.42``."""

	table: str
	column: str
	value: str

	@classmethod
	def for_institution(cls, institution_id: str) -> "ResourceFilter":
		return cls(TABLE, "institution_id", str(institution_id))

	def as_query(self) -> str:
		return f"{self.column}=eq.{self.value}"

	def as_params(self) -> Dict[str, str]:
		return {self.column: f"eq.{self.value}"}


class ChangeFeed:
	"""Source of insert/update events for rows matching a filter."""

	def subscribe(self, resource_filter: ResourceFilter, on_insert: Handler, on_update: Handler, *, since: Optional[str] = None) -> Unsubscribe:
		raise NotImplementedError


class PollingChangeFeed(ChangeFeed):
	"""Change feed backed by short polls against the PostgREST table.

	Inserts are rows whose ``created_at`` passed the cursor; updates are rows
	whose ``read_at`` did, which covers every update the portal itself makes.
	"""

	def __init__(self, api: NotificationApi, *, interval: Optional[float] = None):
		self.api = api
		self.interval = interval or getattr(settings, "NOTIFICATION_POLL_INTERVAL", 5)

	def poller(self, resource_filter: ResourceFilter, on_insert: Handler, on_update: Handler, *, since: Optional[str] = None) -> Callable[[], None]:
		"""Build the poll function; exposed so a caller can drive it without a thread."""

		start = since or timezone.now().isoformat()
		cursors = {"created_at": start, "read_at": start}
		params = resource_filter.as_params()

		def poll() -> None:
			for row in self.api.changed_since(params, "created_at", cursors["created_at"]):
				cursors["created_at"] = max(cursors["created_at"], row.created_at or cursors["created_at"])
				on_insert(row)
			for row in self.api.changed_since(params, "read_at", cursors["read_at"]):
				cursors["read_at"] = max(cursors["read_at"], row.read_at or cursors["read_at"])
				on_update(row)

		return poll

	def subscribe(self, resource_filter: ResourceFilter, on_insert: Handler, on_update: Handler, *, since: Optional[str] = None) -> Unsubscribe:
		poll = self.poller(resource_filter, on_insert, on_update, since=since)

		def safe_poll() -> None:
			try:
				poll()
			except ApiError as exc:
				logger.warning("Polling %s (%s) failed: %s", resource_filter.table, resource_filter.as_query(), exc.message)

		timer = RepeatingTimer(self.interval, safe_poll, name=f"feed-{resource_filter.as_query()}").start()
		return timer.cancel


class NotificationFeed:
	def __init__(
		self,
		institution_id: str,
		api: NotificationApi,
		change_feed: Optional[ChangeFeed] = None,
		*,
		limit: Optional[int] = None,
		refresh_interval: Optional[float] = None,
		on_change: Optional[Callable[[str, Optional[Notification]], None]] = None,
	):
		self.institution_id = str(institution_id)
		self.api = api
		self.change_feed = change_feed
		self.limit = limit or getattr(settings, "NOTIFICATION_FEED_LIMIT", 50)
		self.refresh_interval = refresh_interval or getattr(settings, "NOTIFICATION_REFRESH_INTERVAL", 30)
		self.on_change = on_change
		self.notifications: List[Notification] = []
		self.unread_count = 0
		self.error: Optional[str] = None
		self._lock = threading.RLock()
		self._unsubscribe: Optional[Unsubscribe] = None
		self._timer: Optional[RepeatingTimer] = None

	@property
	def resource_filter(self) -> ResourceFilter:
		return ResourceFilter.for_institution(self.institution_id)

	def _emit(self, event: str, notification: Optional[Notification] = None) -> None:
		if self.on_change is not None:
			self.on_change(event, notification)

	def _index(self, notification_id: str) -> Optional[int]:
		for position, item in enumerate(self.notifications):
			if item.id == notification_id:
				return position
		return None

	def load(self) -> List[Notification]:
		try:
			rows = self.api.list(self.institution_id, limit=self.limit)
		except ApiError as exc:
			logger.warning("Loading notifications for %s failed: %s", self.institution_id, exc.message)
			with self._lock:
				self.notifications = []
				self.error = exc.message
			return []
		rows = sorted(rows, key=lambda item: item.created_at or "", reverse=True)[: self.limit]
		with self._lock:
			self.notifications = rows
			self.unread_count = sum(1 for item in rows if not item.is_read)
			self.error = None
		return rows

	def refresh_unread_count(self) -> int:
		try:
			count = self.api.count_unread(self.institution_id)
		except ApiError as exc:
			logger.warning("Unread count refresh for %s failed: %s", self.institution_id, exc.message)
			return self.unread_count
		with self._lock:
			changed = count != self.unread_count
			self.unread_count = count
		if changed:
			self._emit(EVENT_UNREAD)
		return count

	def handle_insert(self, notification: Notification) -> None:
		with self._lock:
			if self._index(notification.id) is not None:
				return
			self.notifications.insert(0, notification)
			if not notification.is_read:
				self.unread_count += 1
		self._emit(EVENT_INSERT, notification)

	def handle_update(self, notification: Notification) -> None:
		with self._lock:
			position = self._index(notification.id)
			if position is not None:
				self.notifications[position] = notification
		self._emit(EVENT_UPDATE, notification)
		self.refresh_unread_count()

	def mark_as_read(self, notification_id: str) -> bool:
		"""Flip one row to read before the server confirms; undo on failure."""

		with self._lock:
			position = self._index(notification_id)
			previous = self.notifications[position] if position is not None else None
			if previous is not None and previous.is_read:
				return True
			if previous is not None:
				self.notifications[position] = previous.mark_read()
				self.unread_count = max(self.unread_count - 1, 0)
		try:
			self.api.mark_read(notification_id, self.institution_id)
		except ApiError as exc:
			logger.warning("Marking notification %s as read failed: %s", notification_id, exc.message)
			with self._lock:
				self.error = exc.message
				if previous is not None:
					position = self._index(notification_id)
					if position is not None:
						self.notifications[position] = previous
					self.unread_count += 1
			return False
		return True

	def mark_all_as_read(self) -> bool:
		with self._lock:
			previous_rows = list(self.notifications)
			previous_count = self.unread_count
			now = timezone.now().isoformat()
			self.notifications = [item if item.is_read else replace(item, is_read=True, read_at=now) for item in previous_rows]
			self.unread_count = 0
		try:
			self.api.mark_all_read(self.institution_id, read_at=now)
		except ApiError as exc:
			logger.warning("Marking all notifications read for %s failed: %s", self.institution_id, exc.message)
			with self._lock:
				self.error = exc.message
				self.notifications = previous_rows
				self.unread_count = previous_count
			return False
		return True

	def start(self, *, load: bool = True) -> "NotificationFeed":
		if load:
			self.load()
		if self.change_feed is not None and self._unsubscribe is None:
			newest = self.notifications[0].created_at if self.notifications else None
			self._unsubscribe = self.change_feed.subscribe(self.resource_filter, self.handle_insert, self.handle_update, since=newest)
		if self._timer is None:
			self._timer = RepeatingTimer(self.refresh_interval, self.refresh_unread_count, name=f"unread-{self.institution_id}").start()
		return self

	def stop(self) -> None:
		if self._unsubscribe is not None:
			self._unsubscribe()
			self._unsubscribe = None
		if self._timer is not None:
			self._timer.cancel()
			self._timer = None

	def __enter__(self):
		return self.start()

	def __exit__(self, exc_type, exc, tb):
		self.stop()
		return False
