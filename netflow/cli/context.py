# netflow/cli/context.py

"""
CLI context: loads the configuration once and builds the indexer container
on first use, so query commands never touch the RPC node.
"""

from typing import Optional

import click

from ..core.config import IndexerConfig
from ..core.container import IndexerContainer
from ..core.errors import ConfigError
from ..core.logging import NetflowLogger, log_with_context, DEBUG
from ..database import DatabaseManager

CONFIG_ERROR_EXIT_CODE = 2


class CLIContext:
    def __init__(self, config_path: Optional[str] = None, env_file: Optional[str] = None,
                 log_level: Optional[str] = None):
        self.config_path = config_path
        self.env_file = env_file
        self.log_level = log_level
        self.logger = NetflowLogger.get_logger('cli.context')
        self._config: Optional[IndexerConfig] = None
        self._container: Optional[IndexerContainer] = None

    @property
    def config(self) -> IndexerConfig:
        if self._config is None:
            try:
                if self.config_path:
                    self._config = IndexerConfig.from_file(self.config_path)
                else:
                    self._config = IndexerConfig.from_env(env_file=self.env_file)
            except ConfigError as e:
                click.echo(f"Configuration error: {e.message}", err=True)
                raise click.exceptions.Exit(CONFIG_ERROR_EXIT_CODE)
        return self._config

    @property
    def container(self) -> IndexerContainer:
        if self._container is None:
            from .. import configure_logging, create_indexer
            configure_logging(self.config, level=self.log_level)
            self._container = create_indexer(self.config)
        return self._container

    def shutdown(self) -> None:
        if self._container is not None and self._container.is_created(DatabaseManager):
            log_with_context(self.logger, DEBUG, "Closing database connections")
            self._container.get(DatabaseManager).shutdown()
