# netflow/pipeline/indexing_loop.py

import enum
import threading
from typing import Dict, List, Optional, Sequence, Tuple

from msgspec import Struct, field

from ..clients import RpcClient
from ..core.errors import NetflowError
from ..core.logging import LoggingMixin
from ..database import NetflowStore
from ..decode import TransferDecoder
from ..types import IndexingConfig
from .reorg import ReorgPolicy


class LoopState(str, enum.Enum):
    IDLE = "IDLE"
    FETCHING = "FETCHING"
    DECODING = "DECODING"
    COMMITTING = "COMMITTING"


class RangeReport(Struct):
    token_address: str
    from_block: int
    to_block: int
    received: int = 0
    inserted: int = 0
    malformed: int = 0


class CycleReport(Struct):
    head: Optional[int] = None
    safe_head: Optional[int] = None
    ranges: List[RangeReport] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def processed(self) -> bool:
        return bool(self.ranges)

    @property
    def inserted(self) -> int:
        return sum(r.inserted for r in self.ranges)

    @property
    def caught_up(self) -> bool:
        """True when every range ended at the safe head."""
        return all(r.to_block >= (self.safe_head or 0) for r in self.ranges)


class IndexingLoop(LoggingMixin):
    """
    Single writer of the store.

    Each tracked token keeps its own cursor, the last block fully committed
    for it. A cycle asks the node for the head once, then for every token
    fetches at most ``max_lookback`` blocks past its cursor, decodes them and
    commits them together with the new aggregate. A cursor moves only after
    its commit returns, so a failed range is fetched again next cycle.
    """

    def __init__(self,
                 rpc: RpcClient,
                 decoder: TransferDecoder,
                 store: NetflowStore,
                 reorg_policy: ReorgPolicy,
                 config: IndexingConfig,
                 token_addresses: Sequence[str],
                 stop_event: Optional[threading.Event] = None):
        self.rpc = rpc
        self.decoder = decoder
        self.store = store
        self.reorg_policy = reorg_policy
        self.config = config
        self.token_addresses = [address.lower() for address in token_addresses]
        self.stop_event = stop_event or threading.Event()

        self.state = LoopState.IDLE
        self.cursors: Dict[str, int] = {}

    # === Cursors ===

    def load_cursors(self) -> Dict[str, int]:
        """Re-derive cursors from the committed aggregates."""
        stored = self.store.get_cursors()
        self.cursors = {token: stored[token] for token in self.token_addresses if token in stored}
        self.log_info("Cursors loaded", tokens=len(self.token_addresses),
                      cursor=dict(self.cursors))
        return dict(self.cursors)

    def initial_cursor(self, safe_head: int) -> int:
        """Cursor for a token that has never been committed."""
        if self.config.start_block is not None:
            return self.config.start_block - 1
        return max(safe_head - self.config.backfill_blocks, 0)

    def compute_range(self, cursor: int, safe_head: int) -> Optional[Tuple[int, int]]:
        from_block = cursor + 1
        to_block = min(safe_head, from_block + self.config.max_lookback - 1)
        if from_block > to_block:
            return None
        return from_block, to_block

    # === Cycle ===

    def run_cycle(self) -> CycleReport:
        report = CycleReport()

        self.state = LoopState.FETCHING
        try:
            report.head = self.rpc.get_latest_block_number()
        except NetflowError as e:
            self.state = LoopState.IDLE
            self.log_error("Failed to fetch chain head", error=e.message,
                           exception_type=type(e).__name__)
            report.errors.append(f"head: {e.message}")
            return report

        report.safe_head = self.reorg_policy.safe_head(report.head)

        for token in self.token_addresses:
            if token not in self.cursors:
                self.cursors[token] = self.initial_cursor(report.safe_head)

            block_range = self.compute_range(self.cursors[token], report.safe_head)
            if block_range is None:
                self.log_debug("Nothing to index", token_address=token,
                               cursor=self.cursors[token], block_number=report.safe_head)
                continue

            try:
                report.ranges.append(self._index_range(token, *block_range))
            except NetflowError as e:
                self.log_error("Range failed, cursor kept",
                               **self.log_range_context(token, *block_range,
                                                        cursor=self.cursors[token],
                                                        error=e.message,
                                                        exception_type=type(e).__name__))
                report.errors.append(f"{token} {block_range[0]}-{block_range[1]}: {e.message}")

        self.state = LoopState.IDLE
        return report

    def _index_range(self, token: str, from_block: int, to_block: int) -> RangeReport:
        self.state = LoopState.FETCHING
        logs = self.rpc.get_logs(from_block, to_block, [token])

        self.state = LoopState.DECODING
        events, stats = self.decoder.decode_batch(logs)

        self.state = LoopState.COMMITTING
        result = self.store.upsert_transfers_and_aggregate(events, to_block, [token])
        self.cursors[token] = to_block

        self.log_info("Range indexed",
                      **self.log_range_context(token, from_block, to_block,
                                               log_count=len(logs),
                                               inserted=result.inserted,
                                               skipped=result.duplicates,
                                               malformed=stats.malformed))
        return RangeReport(
            token_address=token,
            from_block=from_block,
            to_block=to_block,
            received=len(logs),
            inserted=result.inserted,
            malformed=stats.malformed,
        )

    # === Driver ===

    def run(self, stop_event: Optional[threading.Event] = None) -> None:
        """
        Run cycles until the stop event is set. The event is only checked
        between cycles; when a cycle had nothing to do, failed, or caught up
        with the safe head, the loop waits ``poll_interval`` on the event.
        """
        if stop_event is not None:
            self.stop_event = stop_event

        self.load_cursors()
        self.log_info("Indexing loop started", tokens=self.token_addresses)

        while not self.stop_event.is_set():
            try:
                report = self.run_cycle()
            except Exception as e:
                self.state = LoopState.IDLE
                self.log_error("Indexing cycle failed unexpectedly",
                               exc_info=True,
                               error=str(e),
                               exception_type=type(e).__name__)
                self.stop_event.wait(self.config.poll_interval)
                continue
            if report.errors or not report.processed or report.caught_up:
                self.stop_event.wait(self.config.poll_interval)

        self.state = LoopState.IDLE
        self.log_info("Indexing loop stopped", cursor=dict(self.cursors))

    def request_stop(self) -> None:
        self.stop_event.set()
