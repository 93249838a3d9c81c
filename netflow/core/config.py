# netflow/core/config.py

import os
from pathlib import Path
from typing import Dict, List, Mapping, Optional, FrozenSet
from urllib.parse import urlparse

import msgspec
import yaml
from eth_utils import is_address
from msgspec import Struct, field

from ..types import (
    EvmAddress,
    RpcConfig,
    DatabaseConfig,
    IndexingConfig,
    TokenConfig,
    WatchedAddressConfig,
    ApiConfig,
    LoggingConfig,
)
from .errors import ConfigError
from .logging import NetflowLogger, log_with_context, INFO


ENV_PREFIX = "NETFLOW_"


class IndexerConfig(Struct):
    rpc: RpcConfig = field(default_factory=RpcConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    indexing: IndexingConfig = field(default_factory=IndexingConfig)
    tokens: List[TokenConfig] = field(default_factory=list)
    watched: List[WatchedAddressConfig] = field(default_factory=list)
    api: ApiConfig = field(default_factory=ApiConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self) -> None:
        self.tokens = [
            TokenConfig(address=EvmAddress(t.address.lower()), symbol=t.symbol, decimals=t.decimals)
            for t in self.tokens
        ]
        self.watched = [
            WatchedAddressConfig(address=EvmAddress(w.address.lower()), label=w.label)
            for w in self.watched
        ]
        self.database.url = normalize_database_url(self.database.url)

    @property
    def token_addresses(self) -> List[EvmAddress]:
        return [t.address for t in self.tokens]

    @property
    def token_decimals(self) -> Dict[EvmAddress, int]:
        return {t.address: t.decimals for t in self.tokens}

    @property
    def watched_addresses(self) -> FrozenSet[EvmAddress]:
        return frozenset(w.address for w in self.watched)

    def validate(self) -> 'IndexerConfig':
        problems = []

        url = urlparse(self.rpc.endpoint_url)
        if url.scheme not in ("http", "https") or not url.netloc:
            problems.append(f"RPC endpoint must be an http(s) URL: {self.rpc.endpoint_url!r}")

        if not self.tokens:
            problems.append("At least one token address must be tracked")
        for token in self.tokens:
            if not is_address(token.address):
                problems.append(f"Invalid token address: {token.address!r}")
            if token.decimals < 0:
                problems.append(f"Token decimals must be non-negative: {token.address}")
        for watched in self.watched:
            if not is_address(watched.address):
                problems.append(f"Invalid watched address: {watched.address!r}")

        indexing = self.indexing
        if indexing.confirmations < 0:
            problems.append("confirmations must be >= 0")
        if indexing.max_lookback < 1:
            problems.append("max_lookback must be >= 1")
        if indexing.poll_interval < 0:
            problems.append("poll_interval must be >= 0")
        if indexing.backfill_blocks < 0:
            problems.append("backfill_blocks must be >= 0")
        if indexing.start_block is not None and indexing.start_block < 0:
            problems.append("start_block must be >= 0")

        rpc = self.rpc
        if rpc.max_retries < 1:
            problems.append("rpc max_retries must be >= 1")
        if rpc.min_interval < 0 or rpc.base_delay < 0 or rpc.max_delay < rpc.base_delay:
            problems.append("rpc delays must satisfy 0 <= base_delay <= max_delay and min_interval >= 0")
        if rpc.overall_timeout <= 0 or rpc.timeout <= 0:
            problems.append("rpc timeouts must be positive")

        if problems:
            raise ConfigError("Invalid configuration: " + "; ".join(problems),
                              context={"problems": problems})
        return self

    @classmethod
    def from_file(cls, path) -> 'IndexerConfig':
        """Load a YAML config file. Missing sections fall back to defaults."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        with open(path, 'r') as f:
            try:
                raw = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Config file is not valid YAML: {path}: {e}") from e

        try:
            config = msgspec.convert(raw, type=cls)
        except msgspec.ValidationError as e:
            raise ConfigError(f"Invalid config file {path}: {e}") from e

        logger = NetflowLogger.get_logger('core.config')
        log_with_context(logger, INFO, "Configuration loaded from file",
                         path=str(path), tokens=len(config.tokens), watched=len(config.watched))
        return config.validate()

    @classmethod
    def from_env(cls, env_vars: Optional[Mapping[str, str]] = None,
                 env_file: Optional[str] = None) -> 'IndexerConfig':
        """Build the config from environment variables (and a .env file)."""
        if env_vars is None:
            from dotenv import load_dotenv
            load_dotenv(env_file)
            env_vars = os.environ
        env = _EnvReader(env_vars)

        rpc_defaults = RpcConfig()
        db_defaults = DatabaseConfig()
        indexing_defaults = IndexingConfig()
        api_defaults = ApiConfig()

        try:
            config = cls(
                rpc=RpcConfig(
                    endpoint_url=env.get_str("RPC_URL", "RPC_HTTP_URL", "POLYGON_RPC",
                                             default=rpc_defaults.endpoint_url),
                    timeout=env.get_float("RPC_TIMEOUT", default=rpc_defaults.timeout),
                    min_interval=env.get_float("RPC_MIN_INTERVAL", default=rpc_defaults.min_interval),
                    max_retries=env.get_int("RPC_MAX_RETRIES", default=rpc_defaults.max_retries),
                    base_delay=env.get_float("RPC_BASE_DELAY", default=rpc_defaults.base_delay),
                    max_delay=env.get_float("RPC_MAX_DELAY", default=rpc_defaults.max_delay),
                    overall_timeout=env.get_float("RPC_OVERALL_TIMEOUT",
                                                  default=rpc_defaults.overall_timeout),
                ),
                database=DatabaseConfig(
                    url=env.get_str("DATABASE_URL", default=db_defaults.url),
                    pool_size=env.get_int("DB_POOL_SIZE", default=db_defaults.pool_size),
                    max_overflow=env.get_int("DB_MAX_OVERFLOW", default=db_defaults.max_overflow),
                ),
                indexing=IndexingConfig(
                    confirmations=env.get_int("CONFIRMATIONS", default=indexing_defaults.confirmations),
                    poll_interval=env.get_float("POLL_INTERVAL", default=indexing_defaults.poll_interval),
                    max_lookback=env.get_int("MAX_LOOKBACK", default=indexing_defaults.max_lookback),
                    start_block=env.get_optional_int("START_BLOCK"),
                    backfill_blocks=env.get_int("BACKFILL_BLOCKS",
                                                default=indexing_defaults.backfill_blocks),
                ),
                tokens=[
                    TokenConfig(address=EvmAddress(address),
                                decimals=env.get_int("TOKEN_DECIMALS", default=18))
                    for address in env.get_list("TOKEN_ADDRESSES", "POL_TOKEN")
                ],
                watched=[
                    WatchedAddressConfig(address=EvmAddress(address))
                    for address in env.get_list("EXCHANGE_ADDRESSES", "BINANCE_WALLETS")
                ],
                api=ApiConfig(
                    host=env.get_str("API_HOST", default=api_defaults.host),
                    port=env.get_int("PORT", "API_PORT", default=api_defaults.port),
                ),
                logging=LoggingConfig(
                    level=env.get_str("LOG_LEVEL", default="INFO"),
                    log_dir=env.get_str("LOG_DIR"),
                    console=env.get_bool("LOG_CONSOLE", default=True),
                    file=env.get_bool("LOG_FILE", default=False),
                    structured=env.get_bool("LOG_STRUCTURED", default=False),
                ),
            )
        except ValueError as e:
            raise ConfigError(f"Invalid environment configuration: {e}") from e

        return config.validate()


def normalize_database_url(url: str) -> str:
    """Bare file paths become sqlite URLs."""
    if "://" in url:
        return url
    return f"sqlite:///{url}"


class _EnvReader:
    """Looks up NETFLOW_-prefixed names first, then the bare aliases."""

    def __init__(self, env: Mapping[str, str]):
        self.env = env

    def _lookup(self, names) -> Optional[str]:
        for name in names:
            for key in (f"{ENV_PREFIX}{name}", name):
                value = self.env.get(key)
                if value is not None and value.strip() != "":
                    return value.strip()
        return None

    def get_str(self, *names, default: Optional[str] = None) -> Optional[str]:
        value = self._lookup(names)
        return value if value is not None else default

    def get_int(self, *names, default: int) -> int:
        value = self._lookup(names)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"{names[0]} must be an integer, got {value!r}")

    def get_optional_int(self, *names) -> Optional[int]:
        value = self._lookup(names)
        if value is None:
            return None
        return self.get_int(*names, default=0)

    def get_float(self, *names, default: float) -> float:
        value = self._lookup(names)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            raise ValueError(f"{names[0]} must be a number, got {value!r}")

    def get_bool(self, *names, default: bool) -> bool:
        value = self._lookup(names)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")

    def get_list(self, *names) -> List[str]:
        value = self._lookup(names)
        if value is None:
            return []
        return [item.strip().lower() for item in value.split(",") if item.strip()]
