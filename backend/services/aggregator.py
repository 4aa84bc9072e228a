"""
Aggregation pipeline: resolve a place, fan out to the data sources, persist
the search, and merge everything into one ``AggregatedResult``.

Each request runs in a single pass with no retries:

    start -> resolving -> ambiguous  (Disambiguation, nothing fetched)
                       -> resolved   (weather + air + region + headlines,
                                      history upsert, favorite flag)
                       -> failed     (exception, nothing persisted)
"""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Callable, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db import SessionLocal
from domain.errors import NoMatchingLocationError
from domain.models import (
    AggregatedResult,
    AirQualitySnapshot,
    Disambiguation,
    Outcome,
    PlaceCandidate,
    RegionInfo,
    WeatherSnapshot,
)
from repositories import FavoritesRepository, HistoryRepository
from services.geocoding import GeocodeResolver, RegionLookup, validate_coordinates
from services.headlines import HeadlineFetcher
from services.identity import make_place_key
from services.place_labels import format_place_label
from services.region_cache import RegionCache
from services.weather import WeatherAggregator
from settings import settings

logger = logging.getLogger(__name__)

ResolveResult = Union[AggregatedResult, Disambiguation]


class AggregationOrchestrator:
    def __init__(
        self,
        resolver: GeocodeResolver,
        weather: WeatherAggregator,
        regions: RegionLookup,
        headlines: HeadlineFetcher,
        history: HistoryRepository,
        favorites: FavoritesRepository,
        session_factory: Callable[[], Session] = SessionLocal,
        executor: Optional[ThreadPoolExecutor] = None,
        enrichment_wait_seconds: Optional[float] = None,
    ):
        self.resolver = resolver
        self.weather = weather
        self.regions = regions
        self.headlines = headlines
        self.history = history
        self.favorites = favorites
        self.session_factory = session_factory
        self.executor = executor or ThreadPoolExecutor(
            max_workers=settings.AGGREGATOR_MAX_WORKERS, thread_name_prefix="aggregator"
        )
        self.enrichment_wait_seconds = (
            enrichment_wait_seconds
            if enrichment_wait_seconds is not None
            else settings.ENRICHMENT_WAIT_SECONDS
        )

    def candidates(self, query: str) -> List[PlaceCandidate]:
        return self.resolver.search(query)

    def resolve(self, query: str) -> ResolveResult:
        """Resolve free text; auto-aggregate a unique match, else ask the caller to pick."""
        matches = self.resolver.search(query)
        if not matches:
            raise NoMatchingLocationError(query.strip())
        if len(matches) > 1:
            logger.info("query %r is ambiguous (%d candidates)", query, len(matches))
            return Disambiguation(query=query.strip(), candidates=matches)

        only = matches[0]
        return self._aggregate(only.lat, only.lon, only.name, only.country, only.state)

    def resolve_at(
        self,
        lat: float,
        lon: float,
        name: Optional[str] = None,
        country: Optional[str] = None,
    ) -> AggregatedResult:
        lat, lon = validate_coordinates(lat, lon)
        name = (name or "").strip() or None
        country = (country or "").strip() or None
        return self._aggregate(lat, lon, name, country, None)

    def _wait_soft(self, future: Future, fallback, what: str) -> Outcome:
        try:
            return future.result(timeout=self.enrichment_wait_seconds)
        except FutureTimeout:
            logger.warning("%s timed out after %.1fs", what, self.enrichment_wait_seconds)
            return Outcome.soft(fallback, f"{what} timed out")
        except Exception as exc:
            logger.warning("%s failed unexpectedly: %s", what, exc)
            return Outcome.soft(fallback, str(exc))

    def _aggregate(
        self,
        lat: float,
        lon: float,
        name: Optional[str],
        country: Optional[str],
        state: Optional[str],
    ) -> AggregatedResult:
        weather_future = self.executor.submit(self.weather.current, lat, lon)
        air_future = self.executor.submit(self.weather.air_quality, lat, lon)
        region_future = self.executor.submit(self.regions.lookup, lat, lon)
        news_future: Optional[Future] = None
        if name:
            news_future = self.executor.submit(self.headlines.fetch, name, country)

        # Mandatory: raises FatalUpstreamError and ends the request here.
        weather: WeatherSnapshot = weather_future.result().unwrap()

        name = name or weather.reported_name or f"{lat:.4f}, {lon:.4f}"
        country = country or weather.reported_country
        if news_future is None:
            news_future = self.executor.submit(self.headlines.fetch, name, country)

        air: AirQualitySnapshot = self._wait_soft(
            air_future, AirQualitySnapshot(), "air quality"
        ).unwrap()
        region: RegionInfo = self._wait_soft(region_future, RegionInfo(), "region lookup").unwrap()
        news = self._wait_soft(news_future, [], "headlines").unwrap()

        place_key = make_place_key(name, country)
        result = AggregatedResult(
            name=name,
            country=country,
            lat=lat,
            lon=lon,
            place_key=place_key,
            label=format_place_label(name, country, region.region or state),
            state=state or region.region,
            weather=weather,
            air_quality=air,
            region=region,
            headlines=list(news),
        )
        self._persist(result)
        return result

    def _persist(self, result: AggregatedResult) -> None:
        """Record the search and read the favorite flag; database errors degrade, not fail."""
        with self.session_factory() as session:
            try:
                self.history.record(session, result.name, result.country)
                result.history_recorded = True
            except SQLAlchemyError:
                logger.exception("failed to record recent search %s", result.place_key)
            try:
                result.is_favorite = self.favorites.is_favorite(session, result.place_key)
            except SQLAlchemyError:
                logger.exception("failed to read favorite flag for %s", result.place_key)


_default_aggregator: Optional[AggregationOrchestrator] = None


def get_default_aggregator() -> AggregationOrchestrator:
    global _default_aggregator
    if _default_aggregator is None:
        cache = RegionCache(
            max_entries=settings.REGION_CACHE_MAX_ENTRIES,
            ttl_seconds=settings.REGION_CACHE_TTL_SECONDS,
            failure_ttl_seconds=settings.REGION_CACHE_FAILURE_TTL_SECONDS,
        )
        favorites = FavoritesRepository()
        _default_aggregator = AggregationOrchestrator(
            resolver=GeocodeResolver(),
            weather=WeatherAggregator(),
            regions=RegionLookup(cache),
            headlines=HeadlineFetcher(),
            history=HistoryRepository(favorites=favorites),
            favorites=favorites,
        )
    return _default_aggregator
