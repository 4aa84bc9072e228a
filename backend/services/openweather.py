"""
Thin OpenWeather client shared by geocoding and weather lookups.

Every method returns the decoded JSON body or raises ``ProviderError``;
deciding whether a failure is fatal is left to the caller.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from domain.errors import ProviderError
from settings import settings

PROVIDER = "openweather"
logger = logging.getLogger(__name__)
_session = requests.Session()


class OpenWeatherClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.OPENWEATHER_API_KEY
        self.base_url = (base_url or settings.OPENWEATHER_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS
        self.session = session or _session

    def _get(self, path: str, params: dict[str, Any]) -> Any:
        if not self.api_key:
            raise ProviderError("Server missing OPENWEATHER_API_KEY", status=500, provider=PROVIDER)

        url = f"{self.base_url}{path}"
        query = dict(params)
        query["appid"] = self.api_key
        try:
            resp = self.session.get(url, params=query, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ProviderError(f"OpenWeather request failed: {exc}", provider=PROVIDER) from exc

        try:
            data = resp.json()
        except ValueError:
            data = None

        if not resp.ok:
            message = data.get("message") if isinstance(data, dict) else None
            raise ProviderError(
                str(message) if message else "OpenWeather error",
                status=resp.status_code,
                provider=PROVIDER,
            )
        if data is None:
            raise ProviderError(
                "OpenWeather returned a non-JSON body", status=resp.status_code, provider=PROVIDER
            )
        logger.debug("OpenWeather GET %s ok (%s)", path, resp.status_code)
        return data

    def direct_geocode(self, query: str, limit: int) -> Any:
        return self._get("/geo/1.0/direct", {"q": query, "limit": str(limit)})

    def current_weather(self, lat: float, lon: float) -> Any:
        return self._get(
            "/data/2.5/weather", {"lat": str(lat), "lon": str(lon), "units": "metric"}
        )

    def air_pollution(self, lat: float, lon: float) -> Any:
        return self._get("/data/2.5/air_pollution", {"lat": str(lat), "lon": str(lon)})


_default_openweather_client: Optional[OpenWeatherClient] = None


def get_default_openweather_client() -> OpenWeatherClient:
    global _default_openweather_client
    if _default_openweather_client is None:
        _default_openweather_client = OpenWeatherClient()
    return _default_openweather_client
