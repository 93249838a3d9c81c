# netflow/database/store.py

from collections import defaultdict
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError

from ..aggregate import aggregate_netflow
from ..core.errors import StorageError
from ..core.logging import LoggingMixin
from ..types import (
    CommitResult,
    Direction,
    EvmAddress,
    NetflowAggregate,
    NetflowTotals,
    TransferEvent,
    ZERO,
    add_amounts,
    subtract_amounts,
)
from .connection import DatabaseManager
from .repositories import NetflowRepository, TransferRepository, WatchedAddressRepository


class NetflowStore(LoggingMixin):
    """
    Owns every persisted row. The indexing loop is its only writer.

    ``upsert_transfers_and_aggregate`` is the single write path: raw rows,
    aggregate totals and the per-token cursor change in one transaction.
    """

    def __init__(self, db_manager: DatabaseManager,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.db_manager = db_manager
        self.clock = clock
        self.transfers = TransferRepository(db_manager)
        self.netflows = NetflowRepository(db_manager)
        self.watched = WatchedAddressRepository(db_manager)

    # === Write path ===

    def upsert_transfers_and_aggregate(self,
                                       events: Sequence[TransferEvent],
                                       to_block: int,
                                       token_addresses: Optional[Iterable[str]] = None) -> CommitResult:
        """
        Insert-or-ignore ``events`` and fold the newly inserted ones into the
        aggregates of their tokens, advancing each token's ``last_block`` to
        ``to_block``. Tokens listed in ``token_addresses`` get their cursor
        advanced even when the batch holds no events for them.
        """
        tokens = {token.lower() for token in (token_addresses or [])}
        tokens.update(event.token_address.lower() for event in events)

        result = CommitResult(to_block=to_block, received=len(events))
        now = self.clock()

        try:
            with self.db_manager.get_transaction() as session:
                inserted: Dict[str, List[TransferEvent]] = defaultdict(list)
                for event in events:
                    if self.transfers.insert_ignore(session, event):
                        inserted[event.token_address.lower()].append(event)
                        result.inserted += 1

                for token in sorted(tokens):
                    row = self.netflows.get_or_create(session, token)
                    totals = aggregate_netflow(row.inflow_total, row.outflow_total, inserted[token])
                    self.netflows.apply_totals(session, row, totals, to_block, now)
                    result.aggregates[token] = row.to_aggregate()

        except SQLAlchemyError as e:
            self.log_error("Batch commit failed, nothing was written",
                           to_block=to_block, error=str(e), exception_type=type(e).__name__)
            raise StorageError(f"Batch commit failed: {e}", context={"to_block": to_block}) from e

        self.log_info("Batch committed",
                      to_block=to_block, inserted=result.inserted, skipped=result.duplicates)
        return result

    def sync_watched_addresses(self, entries: Iterable[Tuple[str, Optional[str]]]) -> Tuple[int, int]:
        try:
            with self.db_manager.get_transaction() as session:
                added, removed = self.watched.replace_all(session, entries)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to sync watched addresses: {e}") from e

        self.log_info("Watched addresses synced", added=added, removed=removed)
        return added, removed

    # === Read path ===

    def list_transfers(self, token_address: str, limit: int = 100, offset: int = 0) -> List[TransferEvent]:
        with self.db_manager.get_session() as session:
            rows = self.transfers.list_by_token(session, token_address, limit=limit, offset=offset)
            return [row.to_event() for row in rows]

    def get_netflow(self, token_address: str) -> NetflowAggregate:
        token = EvmAddress(token_address.lower())
        with self.db_manager.get_session() as session:
            row = self.netflows.get(session, token)
            if row is None:
                return NetflowAggregate.empty(token)
            return row.to_aggregate()

    def get_cursor(self, token_address: str) -> Optional[int]:
        with self.db_manager.get_session() as session:
            row = self.netflows.get(session, token_address.lower())
            return row.last_block if row is not None else None

    def get_cursors(self) -> Dict[str, int]:
        with self.db_manager.get_session() as session:
            return self.netflows.get_cursors(session)

    def count_transfers(self, token_address: Optional[str] = None) -> int:
        with self.db_manager.get_session() as session:
            return self.transfers.count_by_token(session, token_address)

    def get_watched_addresses(self) -> Dict[str, Optional[str]]:
        with self.db_manager.get_session() as session:
            return self.watched.get_labels(session)

    def recompute_totals(self, token_address: str) -> NetflowTotals:
        """Totals rebuilt from the raw transfer rows, for consistency checks."""
        inflow = outflow = ZERO
        with self.db_manager.get_session() as session:
            for row in self.transfers.list_all_by_token(session, token_address):
                if row.direction == Direction.IN.value:
                    inflow = add_amounts(inflow, row.amount)
                else:
                    outflow = add_amounts(outflow, row.amount)
        return NetflowTotals(
            inflow_total=inflow,
            outflow_total=outflow,
            cumulative_net=subtract_amounts(inflow, outflow),
        )
