"""Forward and reverse geocoding.

Forward lookups (text to candidates) use the OpenWeather direct geocoding
API. Reverse lookups (coordinates to administrative region) use
OpenStreetMap Nominatim behind a shared rate limit and a ``RegionCache``.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from typing import Any, List, Optional

import requests

from domain.errors import FatalUpstreamError, ProviderError, ValidationError
from domain.models import Outcome, PlaceCandidate, RegionInfo
from services.openweather import OpenWeatherClient, get_default_openweather_client
from services.region_cache import RegionCache
from settings import settings

CANDIDATE_LIMIT = 5
# Max lat/lon offset for two same-named rows to count as one place.
DUPLICATE_RADIUS_DEG = 0.05
NOMINATIM_PROVIDER = "nominatim"

logger = logging.getLogger(__name__)
_session = requests.Session()
_last_request_ts: float = 0.0
_lock = threading.Lock()
_logged_ua = False

FALLBACK_UA = "placepulse/0.1 (contact: example@example.com)"
if settings.NOMINATIM_USER_AGENT is None:
    logger.warning(
        "NOMINATIM_USER_AGENT not set in environment; using fallback UA. "
        "This may violate Nominatim usage policy."
    )


def _redact_email(ua: str) -> str:
    if "@" not in ua:
        return ua
    return re.sub(r"\S+@\S+", "<redacted>", ua)


_ua_value = settings.NOMINATIM_USER_AGENT or FALLBACK_UA
NOMINATIM_HEADERS = {
    "User-Agent": _ua_value,
}
if settings.NOMINATIM_REFERER:
    NOMINATIM_HEADERS["Referer"] = settings.NOMINATIM_REFERER


def _throttled_get(
    url: str,
    *,
    params: dict[str, Any],
    headers: dict[str, str],
    timeout: float,
) -> requests.Response:
    """Perform a GET request with a simple global rate limit."""
    global _last_request_ts
    with _lock:
        now = time.time()
        delta = now - _last_request_ts
        if delta < settings.NOMINATIM_MIN_INTERVAL:
            time.sleep(settings.NOMINATIM_MIN_INTERVAL - delta)
        _last_request_ts = time.time()
    return _session.get(url, params=params, headers=headers, timeout=timeout)


def _as_coord(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def validate_coordinates(lat: Any, lon: Any) -> tuple[float, float]:
    """Return (lat, lon) as floats or raise ``ValidationError``."""
    lat_f = _as_coord(lat)
    lon_f = _as_coord(lon)
    if lat_f is None or lon_f is None:
        raise ValidationError("Missing or non-numeric lat/lon")
    if not (-90.0 <= lat_f <= 90.0) or not (-180.0 <= lon_f <= 180.0):
        raise ValidationError("lat must be within [-90, 90] and lon within [-180, 180]")
    return lat_f, lon_f


def _candidate_from_raw(item: Any) -> Optional[PlaceCandidate]:
    if not isinstance(item, dict):
        return None
    name = item.get("name")
    country = item.get("country")
    lat = _as_coord(item.get("lat"))
    lon = _as_coord(item.get("lon"))
    if not name or not country or lat is None or lon is None:
        return None
    state = item.get("state") or None
    return PlaceCandidate(
        name=str(name),
        country=str(country),
        lat=lat,
        lon=lon,
        state=str(state) if state else None,
    )


def _same_place(a: PlaceCandidate, b: PlaceCandidate) -> bool:
    """Same name, country and state, and within DUPLICATE_RADIUS_DEG of each other."""
    return (
        a.name.lower() == b.name.lower()
        and a.country.lower() == b.country.lower()
        and (a.state or "").lower() == (b.state or "").lower()
        and abs(a.lat - b.lat) <= DUPLICATE_RADIUS_DEG
        and abs(a.lon - b.lon) <= DUPLICATE_RADIUS_DEG
    )


class GeocodeResolver:
    """Free text to ranked place candidates."""

    def __init__(self, client: Optional[OpenWeatherClient] = None, limit: int = CANDIDATE_LIMIT):
        self.client = client or get_default_openweather_client()
        self.limit = limit

    def search(self, query: str) -> List[PlaceCandidate]:
        q = (query or "").strip()
        if not q:
            raise ValidationError("Query must not be empty")

        try:
            raw = self.client.direct_geocode(q, self.limit)
        except ProviderError as exc:
            raise FatalUpstreamError(exc.message, status=exc.status, provider=exc.provider) from exc
        if not isinstance(raw, list):
            raise FatalUpstreamError("Geocoding returned an unexpected payload", provider="openweather")

        candidates: List[PlaceCandidate] = []
        for item in raw[: self.limit]:
            cand = _candidate_from_raw(item)
            if cand is None:
                continue
            # The provider sometimes repeats a place with slightly different coordinates.
            if any(_same_place(cand, kept) for kept in candidates):
                continue
            candidates.append(cand)

        logger.debug("geocode %r: %d raw, %d usable", q, len(raw), len(candidates))
        return candidates


def _parse_region(data: Any) -> Optional[RegionInfo]:
    if not isinstance(data, dict) or data.get("error"):
        return None
    address = data.get("address") or {}
    if not isinstance(address, dict):
        address = {}
    iso_code = address.get("ISO3166-2-lvl4") or address.get("ISO3166-2-lvl6")
    region_code = None
    if isinstance(iso_code, str) and "-" in iso_code:
        region_code = iso_code.split("-", 1)[1] or None
    return RegionInfo(
        region=address.get("state") or address.get("region") or None,
        region_code=region_code,
        county=address.get("county") or None,
        display_name=data.get("display_name") or None,
    )


class RegionLookup:
    """Coordinates to administrative region via Nominatim, memoized by ``RegionCache``."""

    def __init__(
        self,
        cache: RegionCache,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        zoom: int = 10,
    ):
        self.cache = cache
        self.base_url = (base_url or settings.NOMINATIM_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS
        self.zoom = zoom

    def lookup(self, lat: float, lon: float) -> Outcome:
        return self.cache.get_or_fetch(lat, lon, self._fetch)

    def _fetch(self, lat: float, lon: float) -> Outcome:
        global _logged_ua
        if not _logged_ua:
            logger.debug("Nominatim User-Agent: %s", _redact_email(_ua_value))
            _logged_ua = True

        params = {
            "format": "jsonv2",
            "lat": str(lat),
            "lon": str(lon),
            "zoom": str(self.zoom),
            "addressdetails": "1",
        }
        try:
            resp = _throttled_get(
                f"{self.base_url}/reverse",
                params=params,
                headers=NOMINATIM_HEADERS,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Nominatim reverse geocode error for lat=%s lon=%s: %s", lat, lon, exc)
            return Outcome.soft(RegionInfo(), str(exc), provider=NOMINATIM_PROVIDER)

        if not resp.ok:
            logger.warning(
                "Nominatim reverse geocode status %s for lat=%s lon=%s", resp.status_code, lat, lon
            )
            return Outcome.soft(
                RegionInfo(), f"Nominatim status {resp.status_code}", provider=NOMINATIM_PROVIDER
            )

        try:
            data = resp.json()
        except ValueError as exc:
            logger.warning(
                "Nominatim reverse geocode JSON error for lat=%s lon=%s: %s", lat, lon, exc
            )
            return Outcome.soft(RegionInfo(), "Nominatim returned invalid JSON", provider=NOMINATIM_PROVIDER)

        region = _parse_region(data)
        if region is None:
            return Outcome.soft(RegionInfo(), "Nominatim returned no address", provider=NOMINATIM_PROVIDER)
        return Outcome.ok(region)
