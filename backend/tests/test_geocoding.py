from unittest.mock import MagicMock, patch

import pytest

from domain.errors import FatalUpstreamError, ProviderError, ValidationError
from domain.models import OutcomeKind, PlaceCandidate, RegionInfo
from services import geocoding as geo
from services.region_cache import RegionCache


class DummyResponse:
    def __init__(self, json_data=None, status_code=200):
        self._json = json_data
        self.status_code = status_code

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json


def _resolver(payload=None, error=None):
    client = MagicMock()
    if error is not None:
        client.direct_geocode.side_effect = error
    else:
        client.direct_geocode.return_value = payload
    return geo.GeocodeResolver(client=client), client


def test_empty_query_fails_before_any_call():
    resolver, client = _resolver([])
    with pytest.raises(ValidationError):
        resolver.search("   ")
    client.direct_geocode.assert_not_called()


def test_search_keeps_rank_and_drops_incomplete_candidates():
    resolver, client = _resolver(
        [
            {"name": "Madison", "country": "US", "state": "Wisconsin", "lat": 43.07, "lon": -89.4},
            {"name": "Madison", "country": "US", "lat": 32.5},
            {"country": "US", "lat": 1.0, "lon": 2.0},
            {"name": "Madison", "country": "US", "state": "Alabama", "lat": 34.7, "lon": -86.7},
        ]
    )
    result = resolver.search("Madison")
    client.direct_geocode.assert_called_once_with("Madison", 5)
    assert result == [
        PlaceCandidate("Madison", "US", 43.07, -89.4, "Wisconsin"),
        PlaceCandidate("Madison", "US", 34.7, -86.7, "Alabama"),
    ]


def test_search_collapses_repeated_places():
    resolver, _ = _resolver(
        [
            {"name": "Seoul", "country": "KR", "lat": 37.5666, "lon": 126.9782},
            {"name": "Seoul", "country": "KR", "lat": 37.57, "lon": 126.98},
        ]
    )
    result = resolver.search("Seoul")
    assert len(result) == 1
    assert result[0].lat == 37.5666


def test_search_keeps_same_named_towns_far_apart():
    resolver, _ = _resolver(
        [
            {"name": "Springfield", "country": "US", "state": "Ohio", "lat": 39.92, "lon": -83.81},
            {"name": "Springfield", "country": "US", "state": "Ohio", "lat": 41.26, "lon": -80.76},
        ]
    )
    result = resolver.search("Springfield")
    assert [(c.lat, c.lon) for c in result] == [(39.92, -83.81), (41.26, -80.76)]


def test_provider_failure_is_fatal():
    resolver, _ = _resolver(error=ProviderError("Invalid API key", status=401, provider="openweather"))
    with pytest.raises(FatalUpstreamError) as err:
        resolver.search("Seoul")
    assert err.value.status_code == 401


def test_unexpected_payload_is_fatal():
    resolver, _ = _resolver({"cod": 200})
    with pytest.raises(FatalUpstreamError):
        resolver.search("Seoul")


@pytest.mark.parametrize("lat,lon", [(None, 1.0), (1.0, None), (91.0, 0.0), (0.0, -181.0), ("1", 2.0)])
def test_validate_coordinates_rejects_bad_input(lat, lon):
    with pytest.raises(ValidationError):
        geo.validate_coordinates(lat, lon)


@patch("services.geocoding._session.get")
def test_region_lookup_parses_address(mock_get, monkeypatch):
    monkeypatch.setattr(geo.settings, "NOMINATIM_MIN_INTERVAL", 0.0)
    mock_get.return_value = DummyResponse(
        {
            "display_name": "Madison, Dane County, Wisconsin, United States",
            "address": {
                "city": "Madison",
                "county": "Dane County",
                "state": "Wisconsin",
                "ISO3166-2-lvl4": "US-WI",
                "country": "United States",
            },
        }
    )
    lookup = geo.RegionLookup(RegionCache(), base_url="https://nominatim.test")
    outcome = lookup.lookup(43.0731, -89.4012)
    assert outcome.kind == OutcomeKind.OK
    assert outcome.unwrap() == RegionInfo(
        region="Wisconsin",
        region_code="WI",
        county="Dane County",
        display_name="Madison, Dane County, Wisconsin, United States",
    )
    _, kwargs = mock_get.call_args
    assert kwargs["params"]["lat"] == "43.073"
    assert kwargs["params"]["lon"] == "-89.401"


@patch("services.geocoding._session.get")
def test_region_lookup_failure_degrades_to_empty_region(mock_get, monkeypatch):
    monkeypatch.setattr(geo.settings, "NOMINATIM_MIN_INTERVAL", 0.0)
    mock_get.return_value = DummyResponse({"error": "Unable to geocode"})
    outcome = geo.RegionLookup(RegionCache()).lookup(0.0, 0.0)
    assert outcome.kind == OutcomeKind.SOFT_FAILURE
    assert outcome.unwrap() == RegionInfo()


@patch("services.geocoding._session.get")
def test_region_lookup_http_error_is_soft(mock_get, monkeypatch):
    monkeypatch.setattr(geo.settings, "NOMINATIM_MIN_INTERVAL", 0.0)
    mock_get.return_value = DummyResponse(None, status_code=503)
    outcome = geo.RegionLookup(RegionCache()).lookup(10.0, 10.0)
    assert outcome.kind == OutcomeKind.SOFT_FAILURE
    assert outcome.unwrap().is_empty


def test_same_rounded_coordinates_hit_provider_once(monkeypatch):
    calls = {"count": 0}

    def fake_get(url, params=None, headers=None, timeout=None):
        calls["count"] += 1
        return DummyResponse({"address": {"state": "Seoul"}, "display_name": "Seoul, South Korea"})

    monkeypatch.setattr(geo, "_throttled_get", fake_get)
    lookup = geo.RegionLookup(RegionCache())
    first = lookup.lookup(37.56661, 126.97801)
    second = lookup.lookup(37.56652, 126.97819)

    assert calls["count"] == 1
    assert first == second
    assert second.unwrap().region == "Seoul"


def test_failed_lookup_is_cached_too(monkeypatch):
    calls = {"count": 0}

    def fake_get(url, params=None, headers=None, timeout=None):
        calls["count"] += 1
        return DummyResponse(None, status_code=500)

    monkeypatch.setattr(geo, "_throttled_get", fake_get)
    lookup = geo.RegionLookup(RegionCache())
    lookup.lookup(1.0, 1.0)
    lookup.lookup(1.0, 1.0)
    assert calls["count"] == 1
