from sqlalchemy import Column, Integer, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from watchlist_core.database import Base


class Platform(Base):
    """A user-owned streaming/viewing context (e.g. "Netflix", "Cinema")"""
    __tablename__ = "platforms"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    logo_url = Column(Text, nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Platform(id={self.id}, user_id={self.user_id}, name={self.name})>"
