# tests/conftest.py
"""
pytest fixtures for the netflow indexer: a file-backed SQLite store per
test, an event factory, raw log builders and a scripted fake RPC client.
"""

import itertools
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

import pytest

from netflow.core.errors import FatalRpcError
from netflow.core.logging import NetflowLogger
from netflow.database import DatabaseManager, NetflowStore
from netflow.types import (
    DatabaseConfig,
    Direction,
    EvmAddress,
    EvmHash,
    RawLog,
    TransferEvent,
    TRANSFER_TOPIC,
)

TOKEN = "0x0000000000000000000000000000000000001010"
OTHER_TOKEN = "0x7ceb23fd6bc0add59e62ac25578270cff1b9f619"
EXCHANGE = "0xf977814e90da44bfa03b6295a0616a897441acec"
EXCHANGE_2 = "0x5a52e96bacdabb82fd05763e25335261b270efcb"
ALICE = "0x1111111111111111111111111111111111111111"
BOB = "0x2222222222222222222222222222222222222222"

FIXED_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

_tx_counter = itertools.count(1)


def tx_hash(n: Optional[int] = None) -> str:
    return "0x" + format(n if n is not None else next(_tx_counter), "064x")


def make_event(amount="1", direction=Direction.IN, block_number=100, log_index=0,
               token=TOKEN, tx=None, counterparty=ALICE, exchange=EXCHANGE) -> TransferEvent:
    if direction is Direction.IN:
        from_address, to_address = counterparty, exchange
    else:
        from_address, to_address = exchange, counterparty
    return TransferEvent(
        block_number=block_number,
        tx_hash=EvmHash(tx or tx_hash()),
        log_index=log_index,
        token_address=EvmAddress(token),
        from_address=EvmAddress(from_address),
        to_address=EvmAddress(to_address),
        amount=Decimal(amount),
        direction=direction,
        timestamp=FIXED_TIME,
    )


def address_topic(address: str) -> str:
    return "0x" + "0" * 24 + address[2:].lower()


def make_log(from_address=ALICE, to_address=EXCHANGE, value=10 ** 18, token=TOKEN,
             block_number=100, log_index=0, tx=None, topics=None, data=None,
             removed=False) -> RawLog:
    return RawLog(
        address=token,
        topics=topics if topics is not None else [
            TRANSFER_TOPIC, address_topic(from_address), address_topic(to_address)
        ],
        data=data if data is not None else "0x" + format(value, "064x"),
        blockNumber=hex(block_number),
        transactionHash=tx or tx_hash(),
        logIndex=hex(log_index),
        removed=removed,
    )


def log_payload(log: RawLog) -> dict:
    """The JSON object a node returns for ``log`` in ``eth_getLogs``."""
    return {
        "address": log.address,
        "topics": log.topics,
        "data": log.data,
        "blockNumber": log.blockNumber,
        "transactionHash": log.transactionHash,
        "logIndex": log.logIndex,
        "transactionIndex": "0x0",
        "blockHash": "0x" + "ab" * 32,
        "removed": log.removed,
    }


class FakeRpc:
    """Scripted stand-in for RpcClient: a fixed head and logs per block."""

    def __init__(self, head: int = 1000, logs: Optional[Dict[int, List[RawLog]]] = None):
        self.head = head
        self.logs = logs or {}
        self.calls: List[Tuple[int, int, List[str]]] = []
        self.fail_get_logs: Optional[Exception] = None
        self.fail_head: Optional[Exception] = None

    def get_latest_block_number(self) -> int:
        if self.fail_head:
            raise self.fail_head
        return self.head

    def get_logs(self, from_block, to_block, token_addresses):
        self.calls.append((from_block, to_block, list(token_addresses)))
        if self.fail_get_logs:
            raise self.fail_get_logs
        result = []
        for block in range(from_block, to_block + 1):
            result.extend(log for log in self.logs.get(block, [])
                          if log.address.lower() in token_addresses)
        return result


@pytest.fixture(autouse=True)
def quiet_logging():
    NetflowLogger.reset()
    NetflowLogger.configure(log_level="WARNING", console_enabled=True)
    yield
    NetflowLogger.reset()


@pytest.fixture
def db_manager(tmp_path):
    manager = DatabaseManager(DatabaseConfig(url=f"sqlite:///{tmp_path / 'netflow.db'}"))
    manager.initialize()
    yield manager
    manager.shutdown()


@pytest.fixture
def store(db_manager):
    return NetflowStore(db_manager, clock=lambda: FIXED_TIME)


@pytest.fixture
def fake_rpc():
    return FakeRpc()


@pytest.fixture
def fatal_rpc_error():
    return FatalRpcError("RPC error -32602: invalid params", method="eth_getLogs", code=-32602)
