"""
Favorite-place repository backed by SQLAlchemy.
"""
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Set

from sqlalchemy.orm import Session

from domain.models import Favorite, FavoriteToggle
from repositories.models import FavoriteORM, utcnow
from repositories.statements import upsert_insert
from services.identity import make_place_key


def _favorite_from_orm(orm: FavoriteORM) -> Favorite:
    return Favorite(
        id=orm.id,
        name=orm.name,
        country=orm.country,
        place_key=orm.place_key,
        created_at=orm.created_at,
    )


class FavoritesRepository:
    """Identity-keyed favorites. The only mutation is ``toggle``."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock

    def toggle(self, session: Session, name: str, country: Optional[str]) -> FavoriteToggle:
        """Remove the favorite if present, otherwise add it, in one transaction."""
        key = make_place_key(name, country)
        try:
            deleted = (
                session.query(FavoriteORM)
                .filter(FavoriteORM.place_key == key)
                .delete(synchronize_session=False)
            )
            if not deleted:
                stmt = upsert_insert(session, FavoriteORM).values(
                    name=name,
                    country=country,
                    place_key=key,
                    created_at=self.clock(),
                )
                session.execute(stmt.on_conflict_do_nothing(index_elements=[FavoriteORM.place_key]))
            session.commit()
        except Exception:
            session.rollback()
            raise
        return FavoriteToggle(place_key=key, is_favorite=not deleted)

    def list_favorites(self, session: Session) -> List[Favorite]:
        rows = (
            session.query(FavoriteORM)
            .order_by(FavoriteORM.created_at.desc(), FavoriteORM.id.desc())
            .all()
        )
        return [_favorite_from_orm(f) for f in rows]

    def favorite_keys(self, session: Session, keys: Iterable[str]) -> Set[str]:
        """Return the subset of ``keys`` that are favorites, in one query."""
        wanted = list(set(keys))
        if not wanted:
            return set()
        rows = session.query(FavoriteORM.place_key).filter(FavoriteORM.place_key.in_(wanted)).all()
        return {k for (k,) in rows}

    def is_favorite(self, session: Session, place_key: str) -> bool:
        return place_key in self.favorite_keys(session, [place_key])
