from enum import Enum


class MediaType(str, Enum):
    """Catalog item kind, as reported by TMDB"""
    MOVIE = "movie"
    TV = "tv"


class WatchlistStatus(str, Enum):
    """Where a user is with a watchlist entry"""
    TO_WATCH = "to_watch"
    WATCHING = "watching"
    WATCHED = "watched"
