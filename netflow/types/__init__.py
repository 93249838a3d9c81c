# netflow/types/__init__.py

from .constants import ZERO_ADDRESS, TRANSFER_TOPIC, TRANSFER_EVENT_SIGNATURE, DEFAULT_TOKEN_DECIMALS

from .new import (
    HexStr,
    EvmAddress,
    EvmHash,
    BlockNumber,
)

from .evm import RawLog

from .config import (
    RpcConfig,
    DatabaseConfig,
    IndexingConfig,
    TokenConfig,
    WatchedAddressConfig,
    ApiConfig,
    LoggingConfig,
)

from .model import (
    Direction,
    TransferEvent,
    NetflowTotals,
    NetflowAggregate,
    CommitResult,
)

from .amount import (
    ZERO,
    parse_amount,
    format_amount,
    add_amounts,
    subtract_amounts,
    sum_amounts,
    from_base_units,
)
