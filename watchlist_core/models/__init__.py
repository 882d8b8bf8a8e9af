"""
Import all models to ensure they are registered with SQLAlchemy
"""
from watchlist_core.models.user import User
from watchlist_core.models.movie import Movie
from watchlist_core.models.platform import Platform
from watchlist_core.models.watchlist import WatchlistEntry

__all__ = [
    "User",
    "Movie",
    "Platform",
    "WatchlistEntry",
]
