"""
Place lookup API routes: search, disambiguation, and aggregated weather views.
"""
import logging
from typing import List, Optional, Union

from fastapi import APIRouter, Query

from api.errors import to_http_exception
from api.schemas import CamelModel
from domain.models import AggregatedResult, Disambiguation, HeadlineItem, PlaceCandidate
from services.aggregator import get_default_aggregator
from services.place_labels import format_candidate_label

router = APIRouter()
logger = logging.getLogger(__name__)


class HeadlineResponse(CamelModel):
    title: str
    source: Optional[str] = None
    url: str
    published_at: Optional[str] = None
    description: Optional[str] = None


class CandidateResponse(CamelModel):
    name: str
    country: str
    state: Optional[str] = None
    lat: float
    lon: float
    label: str


class DisambiguationResponse(CamelModel):
    query: str
    candidates: List[CandidateResponse]


class WeatherResponse(CamelModel):
    city: str
    country: Optional[str] = None
    state: Optional[str] = None
    lat: float
    lon: float
    label: str
    city_key: str
    region: Optional[str] = None
    region_code: Optional[str] = None
    county: Optional[str] = None
    display_name: Optional[str] = None
    temp: Optional[float] = None
    description: Optional[str] = None
    aqi: Optional[int] = None
    aqi_text: Optional[str] = None
    news: List[HeadlineResponse]
    is_favorite: bool = False
    history_recorded: bool = False


def headline_to_response(item: HeadlineItem) -> HeadlineResponse:
    return HeadlineResponse(
        title=item.title,
        source=item.source,
        url=item.url,
        published_at=item.published_at,
        description=item.description,
    )


def candidate_to_response(candidate: PlaceCandidate) -> CandidateResponse:
    return CandidateResponse(
        name=candidate.name,
        country=candidate.country,
        state=candidate.state,
        lat=candidate.lat,
        lon=candidate.lon,
        label=format_candidate_label(candidate),
    )


def result_to_response(result: AggregatedResult) -> WeatherResponse:
    """Flatten the domain result into the wire shape the web client reads."""
    return WeatherResponse(
        city=result.name,
        country=result.country,
        state=result.state,
        lat=result.lat,
        lon=result.lon,
        label=result.label,
        city_key=result.place_key,
        region=result.region.region,
        region_code=result.region.region_code,
        county=result.region.county,
        display_name=result.region.display_name,
        temp=result.weather.temperature,
        description=result.weather.description,
        aqi=result.air_quality.aqi,
        aqi_text=result.air_quality.label,
        news=[headline_to_response(h) for h in result.headlines],
        is_favorite=result.is_favorite,
        history_recorded=result.history_recorded,
    )


def disambiguation_to_response(payload: Disambiguation) -> DisambiguationResponse:
    return DisambiguationResponse(
        query=payload.query,
        candidates=[candidate_to_response(c) for c in payload.candidates],
    )


@router.get("/weather", response_model=Union[WeatherResponse, DisambiguationResponse])
def weather_by_query(city: str = Query("", description="Free-text place name")):
    """Resolve a place name; returns a full result or a candidate list to choose from."""
    try:
        outcome = get_default_aggregator().resolve(city)
    except Exception as exc:
        raise to_http_exception(exc) from exc

    if isinstance(outcome, Disambiguation):
        return disambiguation_to_response(outcome)
    return result_to_response(outcome)


@router.get("/weatherByCoords", response_model=WeatherResponse)
def weather_by_coords(
    lat: Optional[float] = None,
    lon: Optional[float] = None,
    city: Optional[str] = None,
    country: Optional[str] = None,
):
    """Aggregate for explicit coordinates, e.g. after the caller picked a candidate."""
    try:
        result = get_default_aggregator().resolve_at(lat, lon, name=city, country=country)
    except Exception as exc:
        raise to_http_exception(exc) from exc
    return result_to_response(result)


@router.get("/geo", response_model=List[CandidateResponse])
def geocode_candidates(q: str = Query("", description="Free-text place name")):
    """List geocoding candidates without fetching any weather data."""
    try:
        matches = get_default_aggregator().candidates(q)
    except Exception as exc:
        raise to_http_exception(exc) from exc
    logger.debug("geo %r -> %d candidates", q, len(matches))
    return [candidate_to_response(c) for c in matches]
