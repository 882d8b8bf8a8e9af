from pydantic import BaseModel, Field, ConfigDict, field_validator
from datetime import datetime
from typing import Optional, List

from watchlist_core.schemas.enums import WatchlistStatus
from watchlist_core.schemas.movie import MovieRecord


# ==================== WATCHLIST ENTRY SCHEMAS ====================

class InsertWatchlistEntry(BaseModel):
    """Schema for adding a cached movie to a user's watchlist"""
    user_id: int
    movie_id: int = Field(..., description="Internal movie.id (not the TMDB id)")
    platform_id: Optional[int] = None
    status: WatchlistStatus = WatchlistStatus.TO_WATCH
    watched_date: Optional[datetime] = None
    notes: Optional[str] = None


class WatchlistEntryUpdate(BaseModel):
    """Schema for updating a watchlist entry; unset fields are left alone"""
    platform_id: Optional[int] = None
    status: Optional[WatchlistStatus] = None
    watched_date: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator('status')
    @classmethod
    def status_not_null(cls, v):
        # Omit the field to leave the status alone; the column is NOT NULL
        if v is None:
            raise ValueError('status cannot be null')
        return v


class WatchlistEntryRecord(InsertWatchlistEntry):
    id: int
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class WatchlistEntryWithMovie(WatchlistEntryRecord):
    movie: MovieRecord


# ==================== HTTP PAYLOADS ====================

class CatalogItem(BaseModel):
    """TMDB search result as posted by the client"""
    id: int
    title: Optional[str] = None
    name: Optional[str] = None  # TV shows use `name`
    overview: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    release_date: Optional[str] = None
    first_air_date: Optional[str] = None
    vote_average: Optional[float] = None
    genres: List[str] = []
    media_type: Optional[str] = None


class WatchlistAdd(BaseModel):
    """Schema for POST /api/watchlist"""
    user_id: int
    tmdb_movie: CatalogItem
    platform_id: Optional[int] = None
    status: WatchlistStatus = WatchlistStatus.TO_WATCH
    watched_date: Optional[datetime] = None
    notes: Optional[str] = None


class StorageStats(BaseModel):
    """Row counts per table, as reported by the status endpoint"""
    users: int = 0
    movies: int = 0
    platforms: int = 0
    watchlist_entries: int = 0
    emergency_users: int = 0
