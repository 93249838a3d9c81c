# netflow/types/model.py

import enum
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from msgspec import Struct

from ..core.errors import ParseError
from .amount import ZERO, format_amount, subtract_amounts
from .new import EvmAddress, EvmHash


class Direction(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"


class TransferEvent(Struct, frozen=True):
    block_number: int
    tx_hash: EvmHash
    log_index: int
    token_address: EvmAddress
    from_address: EvmAddress
    to_address: EvmAddress
    amount: Decimal
    direction: Direction
    timestamp: datetime

    def __post_init__(self) -> None:
        if not self.amount.is_finite() or self.amount < ZERO:
            raise ParseError(f"Transfer amount must be a non-negative number: {self.amount}")


class NetflowTotals(Struct, frozen=True):
    inflow_total: Decimal
    outflow_total: Decimal
    cumulative_net: Decimal


class NetflowAggregate(Struct):
    token_address: EvmAddress
    inflow_total: Decimal = ZERO
    outflow_total: Decimal = ZERO
    last_block: int = 0
    updated_at: Optional[datetime] = None

    @property
    def cumulative_net(self) -> Decimal:
        return subtract_amounts(self.inflow_total, self.outflow_total)

    @classmethod
    def empty(cls, token_address: EvmAddress) -> 'NetflowAggregate':
        return cls(token_address=token_address)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token_address": self.token_address,
            "cumulative_net": format_amount(self.cumulative_net),
            "inflow_total": format_amount(self.inflow_total),
            "outflow_total": format_amount(self.outflow_total),
            "last_block": self.last_block,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class CommitResult(Struct):
    to_block: int
    received: int = 0
    inserted: int = 0
    aggregates: Dict[str, NetflowAggregate] = {}

    @property
    def duplicates(self) -> int:
        return self.received - self.inserted
