"""Persistence layer: database engine, ORM models and repositories."""

from songshelf.infrastructure.persistence.database import Database
from songshelf.infrastructure.persistence.models import Base, SongModel
from songshelf.infrastructure.persistence.repositories import SongRepository
from songshelf.infrastructure.persistence.retry import is_lock_error, with_db_retry

__all__ = [
    "Base",
    "Database",
    "SongModel",
    "SongRepository",
    "is_lock_error",
    "with_db_retry",
]
