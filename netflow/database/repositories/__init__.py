# netflow/database/repositories/__init__.py

from .transfer_repository import TransferRepository
from .netflow_repository import NetflowRepository
from .watched_address_repository import WatchedAddressRepository
