from sqlalchemy import Column, Integer, String, Text, DateTime, Index
from sqlalchemy.sql import func
from watchlist_core.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(Text, unique=True, nullable=False)
    password = Column(Text, nullable=False)  # Opaque hashed credential
    display_name = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    environment = Column(String(32), nullable=True)

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username})>"


# Usernames are unique regardless of case
Index("uq_users_username_lower", func.lower(User.username), unique=True)
