"""Infrastructure layer for the MongoDB connection."""

from .database import DatabaseManager, MongoDocument

__all__ = [
    "DatabaseManager",
    "MongoDocument"
]
