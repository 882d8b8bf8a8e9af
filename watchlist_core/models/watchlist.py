from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.sql import func
from watchlist_core.database import Base
from watchlist_core.schemas.enums import WatchlistStatus


class WatchlistEntry(Base):
    """
    WatchlistEntry model - one user's relationship with one cached movie
    """
    __tablename__ = "watchlist_entries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), nullable=False, index=True)
    platform_id = Column(Integer, ForeignKey("platforms.id", ondelete="SET NULL"), nullable=True)
    status = Column(
        Enum(WatchlistStatus, name="watchlist_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=WatchlistStatus.TO_WATCH,
    )
    watched_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Ensure one entry per user per movie
    __table_args__ = (
        UniqueConstraint("user_id", "movie_id", name="unique_user_movie_watchlist"),
    )

    def __repr__(self):
        return f"<WatchlistEntry(user_id={self.user_id}, movie_id={self.movie_id}, status={self.status})>"
