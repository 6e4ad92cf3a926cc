"""HTTP client for the remote portal API.

Every screen of the portal reads and writes through this module. Responses
follow one envelope: lists come back as ``{"data": [...]}`` (paginated lists
add a ``pagination`` block) and mutations as ``{"success", "message", "data"}``.
Failures are folded into the :class:`ApiError` family so views only ever catch
one exception type.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."
TRANSPORT_ERROR_MESSAGE = "Unable to reach the server. Check your connection and try again."


class ApiError(Exception):
	"""Base class for every failure raised by :class:`ApiClient`."""

	def __init__(self, message: Optional[str] = None, *, status_code: Optional[int] = None, payload: Any = None):
		self.message = message or GENERIC_ERROR_MESSAGE
		self.status_code = status_code
		self.payload = payload
		super().__init__(self.message)


class ApiTransportError(ApiError):
	"""The server could not be reached (DNS, refused connection, timeout)."""


class ApiValidationError(ApiError):
	"""The server rejected the request with a 4xx status and a message."""


class ApiNotFound(ApiValidationError):
	"""The addressed resource does not exist (HTTP 404)."""


class ApiUnexpectedError(ApiError):
	"""5xx responses and bodies the client cannot interpret."""


@dataclass(frozen=True)
class Pagination:
	current_page: int = 1
	total_pages: int = 1
	total_items: int = 0
	items_per_page: int = 10
	has_next_page: bool = False
	has_prev_page: bool = False

	@classmethod
	def from_api(cls, raw: Optional[Dict[str, Any]]) -> Optional["Pagination"]:
		if not isinstance(raw, dict):
			return None
		return cls(
			current_page=int(raw.get("currentPage") or 1),
			total_pages=int(raw.get("totalPages") or 1),
			total_items=int(raw.get("totalItems") or 0),
			items_per_page=int(raw.get("itemsPerPage") or 10),
			has_next_page=bool(raw.get("hasNextPage")),
			has_prev_page=bool(raw.get("hasPrevPage")),
		)


@dataclass(frozen=True)
class Page:
	items: List[Dict[str, Any]] = field(default_factory=list)
	pagination: Optional[Pagination] = None


@dataclass(frozen=True)
class MutationResult:
	"""Outcome of a write call; ``message`` is shown to the operator verbatim."""

	success: bool
	message: str = ""
	data: Any = None


def _decode(response) -> Any:
	if response.status_code == 204 or not response.content:
		return None
	try:
		return response.json()
	except ValueError:
		return None


def _extract_message(body: Any) -> Optional[str]:
	if isinstance(body, dict):
		for key in ("message", "error"):
			value = body.get(key)
			if isinstance(value, str) and value.strip():
				return value.strip()
	return None


class ApiClient:
	"""Thin wrapper around :class:`requests.Session` bound to one institution token."""

	def __init__(
		self,
		token: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		timeout: Optional[float] = None,
		session: Optional[requests.Session] = None,
	):
		base_url = base_url if base_url is not None else getattr(settings, "PORTAL_API_BASE_URL", "")
		if not base_url:
			raise ImproperlyConfigured("PORTAL_API_BASE_URL must be set to reach the portal API.")
		self.base_url = base_url.rstrip("/")
		self.timeout = timeout if timeout is not None else getattr(settings, "PORTAL_API_TIMEOUT", 10)
		self.token = token
		self.session = session or requests.Session()
		self.session.headers.update({"Content-Type": "application/json", "Accept": "application/json"})
		if token:
			self.session.headers["Authorization"] = f"Bearer {token}"

	def _url(self, path: str) -> str:
		return f"{self.base_url}/{path.lstrip('/')}"

	def send(
		self,
		method: str,
		path: str,
		*,
		params: Optional[Dict[str, Any]] = None,
		json: Any = None,
		headers: Optional[Dict[str, str]] = None,
		fallback_message: Optional[str] = None,
	) -> requests.Response:
		"""Send one call and return the successful :class:`requests.Response`.

		Raises the matching :class:`ApiError` subclass; the error message is the
		server's own ``message`` when one is present, else ``fallback_message``.
		"""

		if params:
			params = {key: value for key, value in params.items() if value not in (None, "")}

		url = self._url(path)
		logger.debug("%s %s params=%s", method, url, params)
		try:
			response = self.session.request(method, url, params=params or None, json=json, headers=headers, timeout=self.timeout)
		except requests.RequestException as exc:
			logger.warning("Portal API %s %s unreachable: %s", method, path, exc)
			raise ApiTransportError(TRANSPORT_ERROR_MESSAGE) from exc

		status = response.status_code
		if status >= 400:
			body = _decode(response)
			message = _extract_message(body) or fallback_message
			logger.warning("Portal API %s %s failed with %s: %s", method, path, status, message)
			if status == 404:
				raise ApiNotFound(message, status_code=status, payload=body)
			if status < 500:
				raise ApiValidationError(message, status_code=status, payload=body)
			raise ApiUnexpectedError(message, status_code=status, payload=body)
		return response

	def request(
		self,
		method: str,
		path: str,
		*,
		params: Optional[Dict[str, Any]] = None,
		json: Any = None,
		headers: Optional[Dict[str, str]] = None,
		fallback_message: Optional[str] = None,
	) -> Any:
		"""Like :meth:`send` but returns the decoded JSON body (``None`` for 204)."""

		response = self.send(method, path, params=params, json=json, headers=headers, fallback_message=fallback_message)
		body = _decode(response)
		if body is None and response.status_code != 204:
			raise ApiUnexpectedError(fallback_message, status_code=response.status_code)
		return body

	def get(self, path: str, *, params: Optional[Dict[str, Any]] = None, fallback_message: Optional[str] = None) -> Any:
		return self.request("GET", path, params=params, fallback_message=fallback_message)

	def post(self, path: str, json: Any = None, *, fallback_message: Optional[str] = None) -> Any:
		return self.request("POST", path, json=json, fallback_message=fallback_message)

	def patch(self, path: str, json: Any = None, *, fallback_message: Optional[str] = None) -> Any:
		return self.request("PATCH", path, json=json, fallback_message=fallback_message)

	def get_data(self, path: str, *, params: Optional[Dict[str, Any]] = None, fallback_message: Optional[str] = None) -> Any:
		"""Return the ``data`` member of the envelope (or the whole body when absent)."""

		body = self.get(path, params=params, fallback_message=fallback_message)
		if isinstance(body, dict) and "data" in body:
			return body["data"]
		return body

	def get_list(self, path: str, *, params: Optional[Dict[str, Any]] = None, fallback_message: Optional[str] = None) -> List[Dict[str, Any]]:
		"""Fetch a list endpoint; a 404 means "nothing yet" and yields ``[]``."""

		try:
			data = self.get_data(path, params=params, fallback_message=fallback_message)
		except ApiNotFound:
			logger.info("Portal API %s returned 404; treating as empty list", path)
			return []
		if isinstance(data, list):
			return data
		return []

	def get_page(self, path: str, *, params: Optional[Dict[str, Any]] = None, fallback_message: Optional[str] = None) -> Page:
		try:
			body = self.get(path, params=params, fallback_message=fallback_message)
		except ApiNotFound:
			return Page()
		items = body.get("data") if isinstance(body, dict) else body
		pagination = Pagination.from_api(body.get("pagination")) if isinstance(body, dict) else None
		return Page(items=items if isinstance(items, list) else [], pagination=pagination)

	def mutate(self, method: str, path: str, json: Any = None, *, fallback_message: Optional[str] = None) -> MutationResult:
		"""Run a write call and normalise its envelope.

		A 2xx body carrying ``success: false`` is still a rejection and raises
		:class:`ApiValidationError` with the server's message.
		"""

		body = self.request(method, path, json=json, fallback_message=fallback_message)
		if not isinstance(body, dict):
			return MutationResult(success=True, message="", data=body)
		if body.get("success") is False:
			raise ApiValidationError(_extract_message(body) or fallback_message, payload=body)
		return MutationResult(success=True, message=_extract_message(body) or "", data=body.get("data"))


__all__ = [
	"ApiClient",
	"ApiError",
	"ApiNotFound",
	"ApiTransportError",
	"ApiUnexpectedError",
	"ApiValidationError",
	"MutationResult",
	"Page",
	"Pagination",
	"GENERIC_ERROR_MESSAGE",
	"TRANSPORT_ERROR_MESSAGE",
]
