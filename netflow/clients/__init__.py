# netflow/clients/__init__.py

from .rate_limiter import RateLimiter
from .rpc import RpcClient
