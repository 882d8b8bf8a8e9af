from sqlalchemy import Column, Integer, Text, Float, JSON, Enum
from watchlist_core.database import Base
from watchlist_core.schemas.enums import MediaType


class Movie(Base):
    """
    Cached catalog entry (movie or TV show) keyed by its TMDB id.
    Rows are shared by every user and never updated once created.
    """
    __tablename__ = "movies"

    id = Column(Integer, primary_key=True, index=True)
    tmdb_id = Column(Integer, unique=True, nullable=False, index=True)
    title = Column(Text, nullable=False)
    overview = Column(Text)
    poster_path = Column(Text)
    backdrop_path = Column(Text)
    release_date = Column(Text)
    vote_average = Column(Float)
    genres = Column(JSON)  # Ordered list of genre names
    media_type = Column(
        Enum(MediaType, name="media_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=MediaType.MOVIE,
    )
    runtime = Column(Integer)
    number_of_seasons = Column(Integer)
    number_of_episodes = Column(Integer)

    def __repr__(self):
        return f"<Movie(id={self.id}, tmdb_id={self.tmdb_id}, title={self.title})>"
