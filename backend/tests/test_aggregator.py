from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from domain.errors import FatalUpstreamError, NoMatchingLocationError, ValidationError
from domain.models import (
    AggregatedResult,
    AirQualitySnapshot,
    Disambiguation,
    HeadlineItem,
    Outcome,
    PlaceCandidate,
    RegionInfo,
    WeatherSnapshot,
)
from repositories import FavoritesRepository, HistoryRepository
from repositories.models import RecentSearchORM
from services.aggregator import AggregationOrchestrator

SEOUL = PlaceCandidate(name="Seoul", country="KR", lat=37.57, lon=126.98)


def _weather(outcome=None, air=None):
    weather = MagicMock()
    weather.current.return_value = outcome or Outcome.ok(
        WeatherSnapshot(temperature=11.0, description="haze", reported_name="Jung-gu", reported_country="KR")
    )
    weather.air_quality.return_value = air or Outcome.ok(AirQualitySnapshot(aqi=2, label="Fair"))
    return weather


def _build(session_factory, candidates=None, weather=None, regions=None, headlines=None):
    resolver = MagicMock()
    resolver.search.return_value = candidates if candidates is not None else [SEOUL]
    if regions is None:
        regions = MagicMock()
        regions.lookup.return_value = Outcome.ok(RegionInfo(region="Seoul", region_code="11"))
    if headlines is None:
        headlines = MagicMock()
        headlines.fetch.return_value = Outcome.ok(
            [HeadlineItem(title="Seoul news", url="https://news.example/1")]
        )
    favorites = FavoritesRepository()
    orchestrator = AggregationOrchestrator(
        resolver=resolver,
        weather=weather or _weather(),
        regions=regions,
        headlines=headlines,
        history=HistoryRepository(favorites=favorites),
        favorites=favorites,
        session_factory=session_factory,
        executor=ThreadPoolExecutor(max_workers=4),
        enrichment_wait_seconds=1.0,
    )
    return orchestrator, resolver


def test_single_candidate_is_aggregated_directly(session_factory):
    orchestrator, _ = _build(session_factory)
    result = orchestrator.resolve("Seoul")

    assert isinstance(result, AggregatedResult)
    assert result.name == "Seoul"
    assert result.country == "KR"
    assert result.weather.temperature == 11.0
    assert result.air_quality.label == "Fair"
    assert result.region.region == "Seoul"
    assert [h.title for h in result.headlines] == ["Seoul news"]
    assert result.place_key == "seoul|kr"
    assert result.label == "Seoul, KR"
    assert result.history_recorded is True
    assert result.is_favorite is False

    with session_factory() as session:
        rows = session.query(RecentSearchORM).all()
        assert [r.place_key for r in rows] == ["seoul|kr"]


def test_multiple_candidates_return_disambiguation_without_fetching(session_factory):
    weather = _weather()
    madisons = [
        PlaceCandidate("Madison", "US", 43.07, -89.4, "Wisconsin"),
        PlaceCandidate("Madison", "US", 34.7, -86.7, "Alabama"),
    ]
    orchestrator, _ = _build(session_factory, candidates=madisons, weather=weather)
    result = orchestrator.resolve("Madison")

    assert isinstance(result, Disambiguation)
    assert result.candidates == madisons
    weather.current.assert_not_called()
    weather.air_quality.assert_not_called()
    with session_factory() as session:
        assert session.query(RecentSearchORM).count() == 0


def test_no_candidates_is_an_error(session_factory):
    orchestrator, _ = _build(session_factory, candidates=[])
    with pytest.raises(NoMatchingLocationError):
        orchestrator.resolve("Atlantis")


def test_empty_query_propagates_validation_error(session_factory):
    orchestrator, resolver = _build(session_factory)
    resolver.search.side_effect = ValidationError("Query must not be empty")
    with pytest.raises(ValidationError):
        orchestrator.resolve("")


def test_fatal_weather_failure_aborts_without_history(session_factory):
    weather = _weather(outcome=Outcome.fatal("Invalid API key", status=401, provider="openweather"))
    orchestrator, _ = _build(session_factory, weather=weather)

    with pytest.raises(FatalUpstreamError) as err:
        orchestrator.resolve("Seoul")
    assert err.value.status_code == 401
    with session_factory() as session:
        assert session.query(RecentSearchORM).count() == 0


def test_soft_failures_degrade_fields_and_still_record(session_factory):
    weather = _weather(air=Outcome.soft(AirQualitySnapshot(), "down"))
    regions = MagicMock()
    regions.lookup.return_value = Outcome.soft(RegionInfo(), "down")
    headlines = MagicMock()
    headlines.fetch.return_value = Outcome.soft([], "down")
    orchestrator, _ = _build(session_factory, weather=weather, regions=regions, headlines=headlines)

    result = orchestrator.resolve("Seoul")
    assert result.air_quality.aqi is None
    assert result.air_quality.label is None
    assert result.region.is_empty
    assert result.headlines == []
    assert result.history_recorded is True


def test_enrichment_exception_is_absorbed(session_factory):
    headlines = MagicMock()
    headlines.fetch.side_effect = RuntimeError("feed parser crashed")
    orchestrator, _ = _build(session_factory, headlines=headlines)
    assert orchestrator.resolve("Seoul").headlines == []


def test_resolve_at_uses_provider_name_when_not_given(session_factory):
    orchestrator, resolver = _build(session_factory)
    result = orchestrator.resolve_at(37.5636, 126.9976)

    resolver.search.assert_not_called()
    assert result.name == "Jung-gu"
    assert result.place_key == "jung-gu|kr"
    orchestrator.headlines.fetch.assert_called_once_with("Jung-gu", "KR")


def test_resolve_at_prefers_caller_hints(session_factory):
    orchestrator, _ = _build(session_factory)
    result = orchestrator.resolve_at(43.07, -89.4, name="Madison", country="US")
    assert result.name == "Madison"
    assert result.place_key == "madison|us"


def test_resolve_at_rejects_missing_coordinates(session_factory):
    weather = _weather()
    orchestrator, _ = _build(session_factory, weather=weather)
    with pytest.raises(ValidationError):
        orchestrator.resolve_at(None, 126.98)
    weather.current.assert_not_called()


def test_favorite_flag_is_reported(session_factory):
    orchestrator, _ = _build(session_factory)
    with session_factory() as session:
        orchestrator.favorites.toggle(session, "Seoul", "KR")
    assert orchestrator.resolve("Seoul").is_favorite is True


def test_history_failure_is_logged_not_raised(session_factory):
    orchestrator, _ = _build(session_factory)
    orchestrator.history = MagicMock()
    orchestrator.history.record.side_effect = OperationalError("INSERT", {}, Exception("locked"))

    result = orchestrator.resolve("Seoul")
    assert result.history_recorded is False
    assert result.weather.temperature == 11.0
