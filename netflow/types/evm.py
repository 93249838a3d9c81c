# netflow/types/evm.py

from typing import Optional

from msgspec import Struct

from .new import HexStr, EvmAddress, EvmHash


class RawLog(Struct):
    """An ``eth_getLogs`` entry exactly as the node returns it."""
    address: EvmAddress
    topics: list[EvmHash]
    data: HexStr
    blockNumber: HexStr
    transactionHash: EvmHash
    logIndex: HexStr
    transactionIndex: Optional[HexStr] = None
    blockHash: Optional[EvmHash] = None
    removed: bool = False # True when the log was dropped by a reorg
