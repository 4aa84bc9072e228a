"""
Recent-search and favorite API routes.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, HTTPException

from api.errors import to_http_exception
from api.schemas import CamelModel
from db import SessionLocal
from domain.models import Favorite, RecentSearch
from repositories import FavoritesRepository, HistoryRepository

router = APIRouter()
favorites_repo = FavoritesRepository()
history_repo = HistoryRepository(favorites=favorites_repo)
logger = logging.getLogger(__name__)


class RecentSearchResponse(CamelModel):
    id: int
    city: str
    country: Optional[str] = None
    city_key: str
    created_at: str
    updated_at: str
    is_favorite: bool


class FavoriteResponse(CamelModel):
    id: int
    city: str
    country: Optional[str] = None
    city_key: str
    created_at: str


class FavoriteToggleRequest(CamelModel):
    city: str
    country: Optional[str] = None


class FavoriteToggleResponse(CamelModel):
    city_key: str
    is_favorite: bool


class ClearRecentResponse(CamelModel):
    ok: bool
    deleted: int


def to_utc_iso(value: datetime) -> str:
    """ISO 8601 with an explicit UTC offset; stored timestamps are naive UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def recent_to_response(item: RecentSearch) -> RecentSearchResponse:
    return RecentSearchResponse(
        id=item.id,
        city=item.name,
        country=item.country,
        city_key=item.place_key,
        created_at=to_utc_iso(item.created_at),
        updated_at=to_utc_iso(item.updated_at),
        is_favorite=item.is_favorite,
    )


def favorite_to_response(item: Favorite) -> FavoriteResponse:
    return FavoriteResponse(
        id=item.id,
        city=item.name,
        country=item.country,
        city_key=item.place_key,
        created_at=to_utc_iso(item.created_at),
    )


@router.get("/recent", response_model=List[RecentSearchResponse])
def list_recent():
    """Most recently searched places, newest first, with favorite flags."""
    try:
        with SessionLocal() as session:
            items = history_repo.list_recent(session)
    except Exception as exc:
        raise to_http_exception(exc) from exc
    return [recent_to_response(r) for r in items]


@router.delete("/recent", response_model=ClearRecentResponse)
def clear_recent():
    """Forget all recent searches. Favorites are kept."""
    try:
        with SessionLocal() as session:
            deleted = history_repo.clear(session)
    except Exception as exc:
        raise to_http_exception(exc) from exc
    logger.info("cleared %d recent searches", deleted)
    return ClearRecentResponse(ok=True, deleted=deleted)


@router.get("/favorites", response_model=List[FavoriteResponse])
def list_favorites():
    try:
        with SessionLocal() as session:
            items = favorites_repo.list_favorites(session)
    except Exception as exc:
        raise to_http_exception(exc) from exc
    return [favorite_to_response(f) for f in items]


@router.post("/favorites/toggle", response_model=FavoriteToggleResponse)
def toggle_favorite(data: FavoriteToggleRequest):
    city = data.city.strip()
    if not city:
        raise HTTPException(status_code=400, detail="Missing city")
    country = (data.country or "").strip() or None
    try:
        with SessionLocal() as session:
            toggled = favorites_repo.toggle(session, city, country)
    except Exception as exc:
        raise to_http_exception(exc) from exc
    return FavoriteToggleResponse(city_key=toggled.place_key, is_favorite=toggled.is_favorite)
