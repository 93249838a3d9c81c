# netflow/database/tables/__init__.py

from .transfer import DBTransfer
from .netflow import DBNetflow
from .watched_address import DBWatchedAddress
