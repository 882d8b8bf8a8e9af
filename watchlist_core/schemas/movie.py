from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List
import json

from watchlist_core.schemas.enums import MediaType


class InsertMovie(BaseModel):
    """Catalog fields cached when a title is first added to any watchlist"""
    tmdb_id: int = Field(..., description="TMDB id of the movie or TV show")
    title: str = Field(..., min_length=1)
    overview: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    release_date: Optional[str] = None
    vote_average: Optional[float] = None
    genres: Optional[List[str]] = None
    media_type: MediaType = MediaType.MOVIE
    runtime: Optional[int] = None
    number_of_seasons: Optional[int] = None
    number_of_episodes: Optional[int] = None


class MovieRecord(InsertMovie):
    id: int
    model_config = ConfigDict(from_attributes=True)

    @field_validator('genres', mode='before')
    @classmethod
    def decode_genres(cls, v):
        # Raw SQL hands JSON columns back as text
        if isinstance(v, str):
            return json.loads(v) if v else None
        return v
