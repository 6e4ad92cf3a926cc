"""Address search and reverse lookup for the registration location picker."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

from django.conf import settings
from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import Nominatim

LOGGER = logging.getLogger(__name__)

_DECIMAL_PLACES = Decimal("0.000001")


@dataclass(frozen=True)
class GeocodeResult:
	"""Container describing an address lookup outcome."""

	latitude: Decimal
	longitude: Decimal
	display_name: str = ""
	provider: str = "fixture"
	raw: Optional[Dict] = None


def _quantize(value: float | Decimal) -> Decimal:
	return Decimal(str(value)).quantize(_DECIMAL_PLACES, rounding=ROUND_HALF_UP)


def _fixture_table() -> Dict[str, Tuple[float, float]]:
	fixtures = getattr(settings, "GEOCODER_STATIC_FIXTURES", {}) or {}
	return {key.strip().lower(): value for key, value in fixtures.items() if isinstance(value, (tuple, list)) and len(value) == 2}


@lru_cache(maxsize=1)
def _geolocator() -> Nominatim:
	user_agent = getattr(settings, "GEOCODER_USER_AGENT", "institutionportal-geocoder")
	timeout = getattr(settings, "GEOCODER_TIMEOUT", 10)
	return Nominatim(user_agent=user_agent, timeout=timeout)


@lru_cache(maxsize=1)
def _search_callable():
	min_delay = getattr(settings, "GEOCODER_MIN_DELAY_SECONDS", 1.0)
	return RateLimiter(_geolocator().geocode, min_delay_seconds=min_delay, swallow_exceptions=False)


@lru_cache(maxsize=1)
def _reverse_callable():
	min_delay = getattr(settings, "GEOCODER_MIN_DELAY_SECONDS", 1.0)
	return RateLimiter(_geolocator().reverse, min_delay_seconds=min_delay, swallow_exceptions=False)


def _to_result(location) -> GeocodeResult:
	raw = location.raw if isinstance(location.raw, dict) else None
	return GeocodeResult(
		latitude=_quantize(location.latitude),
		longitude=_quantize(location.longitude),
		display_name=location.address or "",
		provider="nominatim",
		raw=raw,
	)


def search_address(query: str, *, limit: int = 5, allow_remote: Optional[bool] = None) -> List[GeocodeResult]:
	"""Return up to ``limit`` candidate places for ``query``.

	Static fixtures answer first so tests and demos never hit the network;
	``GEOCODER_ALLOW_REMOTE = False`` disables Nominatim entirely.
	"""

	normalized = (query or "").strip()
	if len(normalized) < 3:
		return []

	fixture = _fixture_table().get(normalized.lower())
	if fixture:
		return [GeocodeResult(latitude=_quantize(fixture[0]), longitude=_quantize(fixture[1]), display_name=normalized)]

	if allow_remote is None:
		allow_remote = getattr(settings, "GEOCODER_ALLOW_REMOTE", True)
	if not allow_remote:
		return []

	country = getattr(settings, "GEOCODER_COUNTRY_BIAS", None)
	try:
		locations = _search_callable()(query=normalized, exactly_one=False, limit=limit, addressdetails=True, country_codes=country)
	except Exception as exc:  # pragma: no cover - depends on network
		LOGGER.warning("Remote geocoding failed for '%s': %s", normalized, exc)
		return []

	if not locations:
		LOGGER.info("No geocoding result for '%s'", normalized)
		return []
	return [_to_result(location) for location in locations[:limit]]


def reverse_lookup(latitude, longitude, *, allow_remote: Optional[bool] = None) -> Optional[GeocodeResult]:
	"""Resolve a picked map point into a readable address."""

	lat, lon = _quantize(latitude), _quantize(longitude)
	for name, (fixture_lat, fixture_lon) in _fixture_table().items():
		if _quantize(fixture_lat) == lat and _quantize(fixture_lon) == lon:
			return GeocodeResult(latitude=lat, longitude=lon, display_name=name.title())

	if allow_remote is None:
		allow_remote = getattr(settings, "GEOCODER_ALLOW_REMOTE", True)
	if not allow_remote:
		return None

	try:
		location = _reverse_callable()((float(lat), float(lon)), exactly_one=True, addressdetails=True)
	except Exception as exc:  # pragma: no cover - depends on network
		LOGGER.warning("Reverse geocoding failed for (%s, %s): %s", lat, lon, exc)
		return None
	if not location:
		return None
	return _to_result(location)


__all__ = ["GeocodeResult", "reverse_lookup", "search_address"]
