# netflow/database/repositories/netflow_repository.py

from datetime import datetime
from typing import Dict

from sqlalchemy.orm import Session

from ...core.logging import NetflowLogger
from ...types import NetflowTotals, ZERO
from ..base_repository import BaseRepository
from ..tables import DBNetflow


class NetflowRepository(BaseRepository[DBNetflow]):
    """Repository for per-token netflow aggregates"""

    def __init__(self, db_manager):
        super().__init__(db_manager, DBNetflow)
        self.logger = NetflowLogger.get_logger('database.repositories.netflow')

    def get_or_create(self, session: Session, token_address: str) -> DBNetflow:
        row = self.get(session, token_address.lower())
        if row is None:
            row = DBNetflow(token_address=token_address.lower(), inflow_total=ZERO,
                            outflow_total=ZERO, cumulative_net=ZERO, last_block=0)
            session.add(row)
            session.flush()
        return row

    def apply_totals(self, session: Session, row: DBNetflow, totals: NetflowTotals,
                     last_block: int, updated_at: datetime) -> DBNetflow:
        row.inflow_total = totals.inflow_total
        row.outflow_total = totals.outflow_total
        row.cumulative_net = totals.cumulative_net
        row.last_block = max(row.last_block or 0, last_block)
        row.updated_at = updated_at
        session.flush()
        return row

    def get_cursors(self, session: Session) -> Dict[str, int]:
        rows = session.query(DBNetflow.token_address, DBNetflow.last_block).all()
        return {token: last_block for token, last_block in rows}
