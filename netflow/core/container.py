# netflow/core/container.py

from typing import Callable, Dict, List, Type, TypeVar

from .logging import NetflowLogger, log_with_context, DEBUG, ERROR

T = TypeVar('T')


class IndexerContainer:
    """
    Holds the wired components of one indexer process.

    Services are registered as ready instances or as factories taking the
    container. Factories run once, on first ``get``.
    """

    def __init__(self, config):
        self._config = config
        self._factories: Dict[Type, Callable[['IndexerContainer'], object]] = {}
        self._instances: Dict[Type, object] = {}
        self._resolving: List[Type] = []
        self._logger = NetflowLogger.get_logger('core.container')

    @property
    def config(self):
        return self._config

    def register_instance(self, interface: Type[T], instance: T) -> 'IndexerContainer':
        self._instances[interface] = instance
        return self

    def register_factory(self, interface: Type[T],
                         factory_func: Callable[['IndexerContainer'], T]) -> 'IndexerContainer':
        log_with_context(self._logger, DEBUG, "Registering factory service",
                         service_type=interface.__name__)
        self._factories[interface] = factory_func
        return self

    def get(self, service_type: Type[T]) -> T:
        if service_type in self._instances:
            return self._instances[service_type]

        if service_type in self._resolving:
            path = " -> ".join(t.__name__ for t in self._resolving + [service_type])
            raise ValueError(f"Circular dependency detected: {path}")
        if service_type not in self._factories:
            raise ValueError(f"Service {service_type.__name__} not registered")

        self._resolving.append(service_type)
        try:
            instance = self._factories[service_type](self)
        except Exception as e:
            log_with_context(self._logger, ERROR, "Failed to create service instance",
                             service_type=service_type.__name__,
                             error=str(e),
                             exception_type=type(e).__name__)
            raise
        finally:
            self._resolving.pop()

        self._instances[service_type] = instance
        return instance

    def is_created(self, service_type: Type) -> bool:
        return service_type in self._instances
