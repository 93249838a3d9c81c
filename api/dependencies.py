# api/dependencies.py

from typing import Optional

from eth_utils import is_address
from fastapi import HTTPException, Query

from netflow.core.logging import NetflowLogger
from netflow.database import ReadCache

# Set during app startup
_read_cache: Optional[ReadCache] = None
_logger = None


def set_dependencies(read_cache: Optional[ReadCache]):
    """Called during app startup to set global dependencies"""
    global _read_cache, _logger
    _read_cache = read_cache
    _logger = NetflowLogger.get_logger('api.dependencies')


def get_read_cache() -> ReadCache:
    if _read_cache is None:
        raise HTTPException(status_code=500, detail="Read cache not initialized")
    return _read_cache


def get_logger():
    if _logger is None:
        return NetflowLogger.get_logger('api.default')
    return _logger


def get_token_address(token: str = Query(..., description="ERC-20 token contract address")) -> str:
    """Validated, lowercased token address. Anything else is a 422."""
    if not is_address(token):
        raise HTTPException(status_code=422, detail=f"Invalid token address: {token}")
    return token.lower()
