"""
Recent-search repository backed by SQLAlchemy.

Rows are keyed by the place identity key; recording a place that already
exists refreshes it in place with a single INSERT ... ON CONFLICT statement.
"""
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from domain.models import RecentSearch
from repositories.favorites import FavoritesRepository
from repositories.models import RecentSearchORM, utcnow
from repositories.statements import upsert_insert
from services.identity import make_place_key

RECENT_LIMIT = 10


def _recent_from_orm(orm: RecentSearchORM, is_favorite: bool = False) -> RecentSearch:
    return RecentSearch(
        id=orm.id,
        name=orm.name,
        country=orm.country,
        place_key=orm.place_key,
        created_at=orm.created_at,
        updated_at=orm.updated_at,
        is_favorite=is_favorite,
    )


class HistoryRepository:
    """Identity-keyed recent searches."""

    def __init__(
        self,
        favorites: Optional[FavoritesRepository] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.favorites = favorites or FavoritesRepository()
        self.clock = clock

    def record(self, session: Session, name: str, country: Optional[str]) -> RecentSearch:
        key = make_place_key(name, country)
        now = self.clock()
        stmt = upsert_insert(session, RecentSearchORM).values(
            name=name,
            country=country,
            place_key=key,
            created_at=now,
            updated_at=now,
        )
        # created_at is only written by the insert branch
        stmt = stmt.on_conflict_do_update(
            index_elements=[RecentSearchORM.place_key],
            set_={
                "name": stmt.excluded.name,
                "country": stmt.excluded.country,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        try:
            session.execute(stmt)
            session.commit()
        except Exception:
            session.rollback()
            raise
        orm = session.execute(
            select(RecentSearchORM).where(RecentSearchORM.place_key == key)
        ).scalar_one()
        session.refresh(orm)
        return _recent_from_orm(orm)

    def list_recent(self, session: Session, limit: int = RECENT_LIMIT) -> List[RecentSearch]:
        rows = (
            session.query(RecentSearchORM)
            .order_by(RecentSearchORM.updated_at.desc(), RecentSearchORM.id.desc())
            .limit(limit)
            .all()
        )
        favorite_keys = self.favorites.favorite_keys(session, [r.place_key for r in rows])
        return [_recent_from_orm(r, r.place_key in favorite_keys) for r in rows]

    def clear(self, session: Session) -> int:
        deleted = session.query(RecentSearchORM).delete(synchronize_session=False)
        session.commit()
        return deleted
