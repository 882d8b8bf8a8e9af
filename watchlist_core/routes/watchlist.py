from fastapi import APIRouter, Depends, HTTPException, Response, status
from typing import List

from watchlist_core.schemas.enums import MediaType
from watchlist_core.schemas.movie import InsertMovie
from watchlist_core.schemas.watchlist import (
    CatalogItem,
    InsertWatchlistEntry,
    WatchlistAdd,
    WatchlistEntryUpdate,
    WatchlistEntryWithMovie,
)
from watchlist_core.storage.gateway import StorageGateway
from watchlist_core.utils.dependencies import get_storage

router = APIRouter(prefix="/api/watchlist", tags=["Watchlist"])


def to_insert_movie(item: CatalogItem) -> InsertMovie:
    """Map a TMDB search result onto the cached movie fields"""
    media_type = MediaType.TV if item.media_type == "tv" else MediaType.MOVIE
    return InsertMovie(
        tmdb_id=item.id,
        title=item.title or item.name or "Unknown Title",
        overview=item.overview,
        poster_path=item.poster_path,
        backdrop_path=item.backdrop_path,
        release_date=item.release_date or item.first_air_date,
        vote_average=item.vote_average,
        genres=item.genres,
        media_type=media_type,
    )


# ==================== WATCHLIST ENDPOINTS ====================

@router.get("/{user_id}", response_model=List[WatchlistEntryWithMovie])
async def get_watchlist(user_id: int, storage: StorageGateway = Depends(get_storage)):
    """
    Get a user's watchlist, newest first

    Entries whose movie cannot be loaded are left out.
    """
    if not await storage.get_user(user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return await storage.get_watchlist_entries(user_id)


@router.post("/", response_model=WatchlistEntryWithMovie, status_code=status.HTTP_201_CREATED)
async def add_to_watchlist(data: WatchlistAdd, storage: StorageGateway = Depends(get_storage)):
    """
    Add a catalog item to a user's watchlist

    - **tmdb_movie**: the TMDB result; cached in movies on first use
    - **status**, **watched_date**, **notes**, **platform_id**: optional entry fields
    """
    if not await storage.get_user(data.user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    movie = await storage.get_movie_by_tmdb_id(data.tmdb_movie.id)
    if movie is None:
        movie = await storage.create_movie(to_insert_movie(data.tmdb_movie))

    if await storage.has_watchlist_entry(data.user_id, movie.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Movie already in watchlist")

    entry = await storage.create_watchlist_entry(InsertWatchlistEntry(
        user_id=data.user_id,
        movie_id=movie.id,
        platform_id=data.platform_id,
        status=data.status,
        watched_date=data.watched_date,
        notes=data.notes,
    ))
    return WatchlistEntryWithMovie(**entry.model_dump(), movie=movie)


@router.put("/{entry_id}", response_model=WatchlistEntryWithMovie)
async def update_watchlist_entry(
    entry_id: int,
    updates: WatchlistEntryUpdate,
    storage: StorageGateway = Depends(get_storage),
):
    """Update status, platform, watched date or notes of an entry"""
    entry = await storage.update_watchlist_entry(entry_id, updates)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Watchlist entry not found")

    movie = await storage.get_movie(entry.movie_id)
    if movie is None:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Movie not found")
    return WatchlistEntryWithMovie(**entry.model_dump(), movie=movie)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_watchlist_entry(entry_id: int, storage: StorageGateway = Depends(get_storage)):
    """Remove an entry from the watchlist"""
    if not await storage.get_watchlist_entry(entry_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Watchlist entry not found")
    if not await storage.delete_watchlist_entry(entry_id):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete watchlist entry",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
