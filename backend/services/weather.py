"""
Current conditions and air quality for a coordinate.

The current-conditions call is mandatory: any failure becomes a fatal
outcome. The air-quality call is best effort: failures degrade to an empty
``AirQualitySnapshot``.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from domain.errors import ProviderError
from domain.models import AirQualitySnapshot, Outcome, WeatherSnapshot
from services.openweather import PROVIDER, OpenWeatherClient, get_default_openweather_client

logger = logging.getLogger(__name__)

AQI_LABELS = {
    1: "Good",
    2: "Fair",
    3: "Moderate",
    4: "Poor",
    5: "Very Poor",
}


def aqi_label(aqi: Any) -> Optional[str]:
    """Map an AQI value to its label; anything outside 1..5 maps to None."""
    if isinstance(aqi, bool) or not isinstance(aqi, int):
        return None
    return AQI_LABELS.get(aqi)


def _first(items: Any) -> Optional[dict]:
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    return None


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def parse_current_weather(data: dict) -> WeatherSnapshot:
    main = data.get("main") if isinstance(data.get("main"), dict) else {}
    sys_info = data.get("sys") if isinstance(data.get("sys"), dict) else {}
    conditions = _first(data.get("weather")) or {}
    return WeatherSnapshot(
        temperature=_number(main.get("temp")),
        description=conditions.get("description") or None,
        reported_name=data.get("name") or None,
        reported_country=sys_info.get("country") or None,
    )


def parse_air_quality(data: Any) -> AirQualitySnapshot:
    entry = _first(data.get("list")) if isinstance(data, dict) else None
    main = entry.get("main") if entry and isinstance(entry.get("main"), dict) else {}
    aqi = main.get("aqi")
    label = aqi_label(aqi)
    # Only indexes with a label are kept; out-of-range values become unknown.
    return AirQualitySnapshot(aqi=aqi if label else None, label=label)


class WeatherAggregator:
    def __init__(self, client: Optional[OpenWeatherClient] = None):
        self.client = client or get_default_openweather_client()

    def current(self, lat: float, lon: float) -> Outcome:
        try:
            data = self.client.current_weather(lat, lon)
        except ProviderError as exc:
            logger.warning("current weather failed for %s,%s: %s", lat, lon, exc.message)
            return Outcome.fatal(exc.message, status=exc.status, provider=exc.provider)
        if not isinstance(data, dict):
            return Outcome.fatal("OpenWeather returned an unexpected payload", provider=PROVIDER)
        return Outcome.ok(parse_current_weather(data))

    def air_quality(self, lat: float, lon: float) -> Outcome:
        try:
            data = self.client.air_pollution(lat, lon)
        except ProviderError as exc:
            logger.warning("air quality unavailable for %s,%s: %s", lat, lon, exc.message)
            return Outcome.soft(AirQualitySnapshot(), exc.message, provider=exc.provider)
        return Outcome.ok(parse_air_quality(data))
