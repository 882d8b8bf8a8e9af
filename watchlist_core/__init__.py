"""Watchlist tracker backend: tiered, fault-tolerant storage for users, movies and watchlists."""

__version__ = "1.0.0"
