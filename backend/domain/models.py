"""
Core domain models for place resolution and aggregation.
These are framework-agnostic and can be used across all services.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from domain.errors import FatalUpstreamError


class OutcomeKind(str, Enum):
    """Classification of a single external call."""
    OK = "ok"
    SOFT_FAILURE = "soft_failure"
    FATAL_FAILURE = "fatal_failure"


@dataclass(frozen=True)
class Outcome:
    """
    Tagged result of one provider call.

    Soft failures carry the fallback value the caller should use in place of
    real data; fatal failures carry the provider status and message and raise
    on ``unwrap``.
    """
    kind: OutcomeKind
    value: Any = None
    error: Optional[str] = None
    status: Optional[int] = None
    provider: Optional[str] = None

    @classmethod
    def ok(cls, value: Any) -> "Outcome":
        return cls(kind=OutcomeKind.OK, value=value)

    @classmethod
    def soft(cls, fallback: Any, error: str, provider: Optional[str] = None) -> "Outcome":
        return cls(kind=OutcomeKind.SOFT_FAILURE, value=fallback, error=error, provider=provider)

    @classmethod
    def fatal(
        cls, error: str, status: Optional[int] = None, provider: Optional[str] = None
    ) -> "Outcome":
        return cls(kind=OutcomeKind.FATAL_FAILURE, error=error, status=status, provider=provider)

    @property
    def is_ok(self) -> bool:
        return self.kind == OutcomeKind.OK

    def unwrap(self) -> Any:
        if self.kind == OutcomeKind.FATAL_FAILURE:
            raise FatalUpstreamError(
                self.error or "Upstream error", status=self.status, provider=self.provider
            )
        return self.value


@dataclass(frozen=True)
class PlaceCandidate:
    """One geocoding match. Never persisted directly."""
    name: str
    country: str  # ISO 3166-1 alpha-2, e.g. "KR"
    lat: float
    lon: float
    state: Optional[str] = None


@dataclass(frozen=True)
class WeatherSnapshot:
    temperature: Optional[float] = None  # degrees Celsius
    description: Optional[str] = None
    # Place as reported by the weather provider, used when only coordinates are known
    reported_name: Optional[str] = None
    reported_country: Optional[str] = None


@dataclass(frozen=True)
class AirQualitySnapshot:
    aqi: Optional[int] = None  # 1..5
    label: Optional[str] = None


@dataclass(frozen=True)
class RegionInfo:
    """Administrative context from reverse geocoding. Purely additive."""
    region: Optional[str] = None
    region_code: Optional[str] = None
    county: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.region or self.region_code or self.county or self.display_name)


@dataclass(frozen=True)
class HeadlineItem:
    title: str
    url: str
    source: Optional[str] = None
    published_at: Optional[str] = None  # ISO-8601
    description: Optional[str] = None


@dataclass
class AggregatedResult:
    """Fused view of one resolved place."""
    name: str
    country: Optional[str]
    lat: float
    lon: float
    place_key: str
    label: str
    state: Optional[str] = None
    weather: WeatherSnapshot = field(default_factory=WeatherSnapshot)
    air_quality: AirQualitySnapshot = field(default_factory=AirQualitySnapshot)
    region: RegionInfo = field(default_factory=RegionInfo)
    headlines: List[HeadlineItem] = field(default_factory=list)
    is_favorite: bool = False
    history_recorded: bool = False


@dataclass
class Disambiguation:
    """Returned instead of a result when a query matches several places."""
    query: str
    candidates: List[PlaceCandidate]


@dataclass
class RecentSearch:
    id: int
    name: str
    country: Optional[str]
    place_key: str
    created_at: datetime
    updated_at: datetime
    is_favorite: bool = False


@dataclass
class Favorite:
    id: int
    name: str
    country: Optional[str]
    place_key: str
    created_at: datetime


@dataclass(frozen=True)
class FavoriteToggle:
    place_key: str
    is_favorite: bool
