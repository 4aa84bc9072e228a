from .history import HistoryRepository
from .favorites import FavoritesRepository
from . import models

__all__ = ["HistoryRepository", "FavoritesRepository", "models"]
