# netflow/decode/transfer_decoder.py

from datetime import datetime, timezone
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

from eth_abi.exceptions import DecodingError
from msgspec import Struct
from web3 import Web3

from ..core.errors import MalformedLogError, ParseError
from ..core.logging import LoggingMixin
from ..types import (
    DEFAULT_TOKEN_DECIMALS,
    TRANSFER_TOPIC,
    Direction,
    EvmAddress,
    EvmHash,
    RawLog,
    TransferEvent,
    from_base_units,
)


def classify_direction(from_address: str, to_address: str,
                       watched: FrozenSet[str]) -> Optional[Direction]:
    """
    Direction of a transfer relative to the watched set.

    Exactly one side must be watched. A move between two watched addresses
    is internal to the exchange and is neither an inflow nor an outflow.
    """
    to_watched = to_address in watched
    from_watched = from_address in watched
    if to_watched and not from_watched:
        return Direction.IN
    if from_watched and not to_watched:
        return Direction.OUT
    return None


class DecodeStats(Struct):
    received: int = 0
    decoded: int = 0
    skipped: int = 0
    malformed: int = 0


class TransferDecoder(LoggingMixin):
    def __init__(self,
                 token_decimals: Dict[str, int],
                 watched_addresses: Iterable[str],
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.token_decimals = {address.lower(): decimals for address, decimals in token_decimals.items()}
        self.watched = frozenset(address.lower() for address in watched_addresses)
        self.clock = clock
        self.w3 = Web3()

    @property
    def tracked_tokens(self) -> FrozenSet[str]:
        return frozenset(self.token_decimals)

    def update_watched(self, watched_addresses: Iterable[str]) -> None:
        self.watched = frozenset(address.lower() for address in watched_addresses)

    def decode(self, log: RawLog) -> Optional[TransferEvent]:
        """
        Decode one raw log. Returns None when the log is not a tracked
        transfer or does not touch exactly one watched address. Raises
        MalformedLogError when the log claims to be a transfer but cannot
        be decoded.
        """
        if log.removed:
            return None

        token = log.address.lower() if log.address else ""
        if token not in self.token_decimals:
            return None
        if not log.topics or log.topics[0].lower() != TRANSFER_TOPIC:
            return None

        tx_hash = EvmHash(log.transactionHash.lower())
        if len(log.topics) != 3:
            # ERC-721 transfers share the signature but index the token id
            raise MalformedLogError("Transfer log must have exactly 3 topics",
                                    context=self._context(log))

        try:
            block_number = self._hex_to_int(log.blockNumber)
            log_index = self._hex_to_int(log.logIndex)
            from_address = self._topic_to_address(log.topics[1])
            to_address = self._topic_to_address(log.topics[2])
            raw_value = self._decode_value(log.data)
        except (ValueError, TypeError, DecodingError) as e:
            raise MalformedLogError(f"Undecodable transfer log: {e}",
                                    context=self._context(log)) from e

        direction = classify_direction(from_address, to_address, self.watched)
        if direction is None:
            return None

        try:
            return TransferEvent(
                block_number=block_number,
                tx_hash=tx_hash,
                log_index=log_index,
                token_address=EvmAddress(token),
                from_address=from_address,
                to_address=to_address,
                amount=from_base_units(raw_value, self.token_decimals.get(token, DEFAULT_TOKEN_DECIMALS)),
                direction=direction,
                timestamp=self.clock(),
            )
        except ParseError as e:
            raise MalformedLogError(f"Invalid transfer amount: {e}",
                                    context=self._context(log)) from e

    def decode_batch(self, logs: Iterable[RawLog]) -> tuple[List[TransferEvent], DecodeStats]:
        """Decode a range of logs. Malformed logs are logged and skipped."""
        events = []
        stats = DecodeStats()
        for log in logs:
            stats.received += 1
            try:
                event = self.decode(log)
            except MalformedLogError as e:
                stats.malformed += 1
                self.log_warning("Skipping malformed log", error=e.message, **e.context)
                continue

            if event is None:
                stats.skipped += 1
                continue
            events.append(event)
            stats.decoded += 1

        return events, stats

    # === Field decoding ===

    def _hex_to_int(self, value: str) -> int:
        return self.w3.to_int(hexstr=value)

    def _topic_to_address(self, topic: str) -> EvmAddress:
        topic_bytes = self.w3.to_bytes(hexstr=topic)
        if len(topic_bytes) != 32:
            raise ValueError(f"Address topic must be 32 bytes, got {len(topic_bytes)}")
        address = self.w3.codec.decode(["address"], topic_bytes)[0]
        return EvmAddress(address.lower())

    def _decode_value(self, data: str) -> int:
        data_bytes = self.w3.to_bytes(hexstr=data)
        if len(data_bytes) != 32:
            raise ValueError(f"Transfer value must be 32 bytes, got {len(data_bytes)}")
        value = self.w3.codec.decode(["uint256"], data_bytes)[0]
        if value < 0:
            raise ValueError(f"Negative transfer value: {value}")
        return value

    def _context(self, log: RawLog) -> Dict[str, object]:
        return {
            "tx_hash": log.transactionHash,
            "log_index": log.logIndex,
            "block_number": log.blockNumber,
            "token_address": log.address,
        }
