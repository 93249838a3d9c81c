# netflow/database/read_cache.py
"""
Read side used by the HTTP API.

The API only ever sees a ReadCache. ReadThroughCache hands every call
straight to the store; a caching implementation can replace it without the
routers changing.
"""
from abc import ABC, abstractmethod
from typing import List

from ..types import NetflowAggregate, TransferEvent
from .store import NetflowStore


class ReadCache(ABC):

    @abstractmethod
    def get_netflow(self, token_address: str) -> NetflowAggregate:
        pass

    @abstractmethod
    def list_transfers(self, token_address: str, limit: int, offset: int = 0) -> List[TransferEvent]:
        pass


class ReadThroughCache(ReadCache):
    def __init__(self, store: NetflowStore):
        self.store = store

    def get_netflow(self, token_address: str) -> NetflowAggregate:
        return self.store.get_netflow(token_address)

    def list_transfers(self, token_address: str, limit: int, offset: int = 0) -> List[TransferEvent]:
        return self.store.list_transfers(token_address, limit=limit, offset=offset)
