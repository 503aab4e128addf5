"""
Database Package
"""

from .models import Base, SyncStateRecord
from .session import get_engine, get_session_factory, reset_engine

__all__ = [
    "Base",
    "SyncStateRecord",
    "get_engine",
    "get_session_factory",
    "reset_engine",
]
