# netflow/__init__.py

import threading
from pathlib import Path
from typing import Mapping, Optional

from .core.config import IndexerConfig
from .core.container import IndexerContainer
from .core.logging import NetflowLogger, log_with_context, INFO
from .clients import RateLimiter, RpcClient
from .database import DatabaseManager, NetflowStore, ReadCache, ReadThroughCache
from .decode import TransferDecoder
from .pipeline import IndexingLoop, ReorgPolicy, ConfirmationDepthPolicy


def create_indexer(config: Optional[IndexerConfig] = None,
                   config_path: Optional[str] = None,
                   env_vars: Optional[Mapping[str, str]] = None) -> IndexerContainer:
    """
    Wire every component of the indexer.

    The config comes from ``config`` if given, else from a YAML file at
    ``config_path``, else from the environment. Components are built lazily
    on first ``container.get``.
    """
    if config is None:
        if config_path:
            config = IndexerConfig.from_file(config_path)
        else:
            config = IndexerConfig.from_env(env_vars)

    configure_logging(config)

    logger = NetflowLogger.get_logger('core.init')
    log_with_context(logger, INFO, "Creating indexer",
                     tokens=config.token_addresses,
                     watched=len(config.watched),
                     db_url=DatabaseManager._redacted_url(config.database.url))

    container = IndexerContainer(config)
    _register_services(container)
    return container


def configure_logging(config: IndexerConfig, level: Optional[str] = None) -> None:
    settings = config.logging
    NetflowLogger.configure(
        log_dir=Path(settings.log_dir) if settings.log_dir else Path.cwd() / "logs",
        log_level=level or settings.level,
        console_enabled=settings.console,
        file_enabled=settings.file,
        structured_format=settings.structured,
    )


def _register_services(container: IndexerContainer) -> None:
    container.register_instance(threading.Event, threading.Event())
    container.register_factory(DatabaseManager, _create_database_manager)
    container.register_factory(NetflowStore, lambda c: NetflowStore(c.get(DatabaseManager)))
    container.register_factory(ReadCache, lambda c: ReadThroughCache(c.get(NetflowStore)))
    container.register_factory(RateLimiter, lambda c: RateLimiter(c.config.rpc.min_interval))
    container.register_factory(RpcClient, lambda c: RpcClient(c.config.rpc, c.get(RateLimiter)))
    container.register_factory(TransferDecoder, lambda c: TransferDecoder(
        c.config.token_decimals, c.config.watched_addresses))
    container.register_factory(ReorgPolicy, lambda c: ConfirmationDepthPolicy(
        c.config.indexing.confirmations))
    container.register_factory(IndexingLoop, _create_indexing_loop)


def _create_database_manager(container: IndexerContainer) -> DatabaseManager:
    db_manager = DatabaseManager(container.config.database)
    db_manager.initialize()
    return db_manager


def _create_indexing_loop(container: IndexerContainer) -> IndexingLoop:
    config = container.config
    store = container.get(NetflowStore)
    store.sync_watched_addresses((w.address, w.label) for w in config.watched)

    return IndexingLoop(
        rpc=container.get(RpcClient),
        decoder=container.get(TransferDecoder),
        store=store,
        reorg_policy=container.get(ReorgPolicy),
        config=config.indexing,
        token_addresses=config.token_addresses,
        stop_event=container.get(threading.Event),
    )


__all__ = [
    'create_indexer',
    'configure_logging',
    'IndexerConfig',
    'IndexerContainer',
]
