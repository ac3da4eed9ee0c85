"""Database utilities for the Badminton Alphabet backend."""

from .base import Base
from .session import (
    Database,
    build_engine,
    get_database,
    get_session_dependency,
)

__all__ = [
    "Base",
    "Database",
    "build_engine",
    "get_database",
    "get_session_dependency",
]
