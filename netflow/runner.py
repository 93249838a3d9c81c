# netflow/runner.py
"""
Process entry points: the indexing loop in its own thread, the read API on
the main thread.
"""
import signal
import threading
from typing import Optional

import uvicorn

from .core.container import IndexerContainer
from .core.logging import NetflowLogger, log_with_context, INFO
from .database import DatabaseManager, ReadCache
from .pipeline import IndexingLoop

logger = NetflowLogger.get_logger('runner')


def install_stop_handlers(stop_event: threading.Event) -> None:
    """SIGINT and SIGTERM set the stop event. The loop exits after its cycle."""

    def _handler(signum, frame):
        log_with_context(logger, INFO, "Stop signal received", method=signal.Signals(signum).name)
        stop_event.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


def run_indexer(container: IndexerContainer) -> None:
    """Run the indexing loop on the calling thread until a stop signal."""
    loop = container.get(IndexingLoop)
    install_stop_handlers(loop.stop_event)
    try:
        loop.run()
    finally:
        container.get(DatabaseManager).shutdown()


def serve_api(container: IndexerContainer, host: Optional[str] = None, port: Optional[int] = None) -> None:
    from api.main import create_app

    config = container.config
    app = create_app(container.get(ReadCache))
    log_with_context(logger, INFO, "Starting API server",
                     host=host or config.api.host, port=port or config.api.port)
    # uvicorn owns SIGINT/SIGTERM while it runs
    uvicorn.run(app, host=host or config.api.host, port=port or config.api.port,
                log_level=config.logging.level.lower())


def run_all(container: IndexerContainer, host: Optional[str] = None, port: Optional[int] = None) -> None:
    loop = container.get(IndexingLoop)
    thread = threading.Thread(target=loop.run, name="indexing-loop", daemon=True)
    thread.start()

    try:
        serve_api(container, host=host, port=port)
    finally:
        loop.request_stop()
        thread.join()
        log_with_context(logger, INFO, "Indexing loop joined", cursor=dict(loop.cursors))
        container.get(DatabaseManager).shutdown()
