# netflow/database/repositories/transfer_repository.py

from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ...core.logging import NetflowLogger
from ...types import TransferEvent
from ..base_repository import BaseRepository
from ..tables import DBTransfer


IDENTITY_COLUMNS = ['tx_hash', 'log_index', 'token_address']


class TransferRepository(BaseRepository[DBTransfer]):
    """Repository for raw transfer events"""

    def __init__(self, db_manager):
        super().__init__(db_manager, DBTransfer)
        self.logger = NetflowLogger.get_logger('database.repositories.transfer')

    def insert_ignore(self, session: Session, event: TransferEvent) -> bool:
        """Insert one transfer. Returns False when its identity key already exists."""
        stmt = self.insert_statement(session).values(
            block_number=event.block_number,
            tx_hash=event.tx_hash,
            log_index=event.log_index,
            token_address=event.token_address,
            from_address=event.from_address,
            to_address=event.to_address,
            amount=event.amount,
            direction=event.direction.value,
            timestamp=event.timestamp,
        ).on_conflict_do_nothing(index_elements=IDENTITY_COLUMNS)

        result = session.execute(stmt)
        return result.rowcount == 1

    def list_by_token(self, session: Session, token_address: str,
                      limit: int = 100, offset: int = 0) -> List[DBTransfer]:
        return (
            session.query(DBTransfer)
            .filter(DBTransfer.token_address == token_address.lower())
            .order_by(desc(DBTransfer.block_number), desc(DBTransfer.log_index))
            .offset(offset)
            .limit(limit)
            .all()
        )

    def list_all_by_token(self, session: Session, token_address: str) -> List[DBTransfer]:
        return (
            session.query(DBTransfer)
            .filter(DBTransfer.token_address == token_address.lower())
            .all()
        )

    def get_by_key(self, session: Session, tx_hash: str, log_index: int,
                   token_address: str) -> Optional[DBTransfer]:
        return (
            session.query(DBTransfer)
            .filter(DBTransfer.tx_hash == tx_hash.lower(),
                    DBTransfer.log_index == log_index,
                    DBTransfer.token_address == token_address.lower())
            .first()
        )

    def count_by_token(self, session: Session, token_address: Optional[str] = None) -> int:
        query = session.query(DBTransfer)
        if token_address:
            query = query.filter(DBTransfer.token_address == token_address.lower())
        return query.count()
