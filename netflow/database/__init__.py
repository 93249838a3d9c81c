# netflow/database/__init__.py

from .base import Base
from .connection import DatabaseManager
from .read_cache import ReadCache, ReadThroughCache
from .store import NetflowStore

__all__ = [
    'Base',
    'DatabaseManager',
    'NetflowStore',
    'ReadCache',
    'ReadThroughCache',
]
