# netflow/types/config.py

from typing import Optional, List

from msgspec import Struct

from .new import EvmAddress


class RpcConfig(Struct):
    endpoint_url: str = "https://polygon-rpc.com"
    timeout: float = 30.0
    min_interval: float = 0.2
    max_retries: int = 8
    base_delay: float = 1.0
    max_delay: float = 120.0
    overall_timeout: float = 300.0

class DatabaseConfig(Struct):
    url: str = "sqlite:///netflow.db"
    pool_size: int = 5
    max_overflow: int = 10

class IndexingConfig(Struct):
    confirmations: int = 2
    poll_interval: float = 10.0
    max_lookback: int = 100
    start_block: Optional[int] = None
    backfill_blocks: int = 5000

class TokenConfig(Struct):
    address: EvmAddress
    symbol: Optional[str] = None
    decimals: int = 18

class WatchedAddressConfig(Struct):
    address: EvmAddress
    label: Optional[str] = None

class ApiConfig(Struct):
    host: str = "127.0.0.1"
    port: int = 8080

class LoggingConfig(Struct):
    level: str = "INFO"
    log_dir: Optional[str] = None
    console: bool = True
    file: bool = False
    structured: bool = False
