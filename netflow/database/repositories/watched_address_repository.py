# netflow/database/repositories/watched_address_repository.py

from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy.orm import Session

from ...core.logging import NetflowLogger
from ..base_repository import BaseRepository
from ..tables import DBWatchedAddress


class WatchedAddressRepository(BaseRepository[DBWatchedAddress]):
    """Repository for the watched exchange address set"""

    def __init__(self, db_manager):
        super().__init__(db_manager, DBWatchedAddress)
        self.logger = NetflowLogger.get_logger('database.repositories.watched_address')

    def get_labels(self, session: Session) -> Dict[str, Optional[str]]:
        return {row.address: row.label for row in session.query(DBWatchedAddress).all()}

    def replace_all(self, session: Session,
                    entries: Iterable[Tuple[str, Optional[str]]]) -> Tuple[int, int]:
        """Make the table match ``entries``. Returns (added, removed)."""
        wanted = {address.lower(): label for address, label in entries}
        existing = {row.address: row for row in session.query(DBWatchedAddress).all()}

        removed = 0
        for address, row in existing.items():
            if address not in wanted:
                session.delete(row)
                removed += 1

        added = 0
        for address, label in wanted.items():
            row = existing.get(address)
            if row is None:
                session.add(DBWatchedAddress(address=address, label=label))
                added += 1
            elif row.label != label:
                row.label = label

        session.flush()
        return added, removed
