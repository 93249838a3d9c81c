# tests/test_decoder.py

from decimal import Decimal

import pytest

from netflow.core.errors import MalformedLogError
from netflow.decode import TransferDecoder, classify_direction
from netflow.types import Direction, TRANSFER_TOPIC

from conftest import (
    ALICE, BOB, EXCHANGE, EXCHANGE_2, FIXED_TIME, OTHER_TOKEN, TOKEN,
    address_topic, make_log,
)

WATCHED = frozenset({EXCHANGE, EXCHANGE_2})


@pytest.fixture
def decoder():
    return TransferDecoder({TOKEN: 18}, WATCHED, clock=lambda: FIXED_TIME)


@pytest.mark.parametrize("from_address, to_address, expected", [
    (ALICE, EXCHANGE, Direction.IN),
    (EXCHANGE, ALICE, Direction.OUT),
    (ALICE, BOB, None),
    (EXCHANGE, EXCHANGE_2, None),
])
def test_classify_direction(from_address, to_address, expected):
    assert classify_direction(from_address, to_address, WATCHED) is expected


def test_decode_inflow(decoder):
    log = make_log(from_address=ALICE, to_address=EXCHANGE, value=1500 * 10 ** 15,
                   block_number=951, log_index=3)

    event = decoder.decode(log)

    assert event.direction is Direction.IN
    assert event.amount == Decimal("1.5")
    assert event.block_number == 951
    assert event.log_index == 3
    assert event.from_address == ALICE
    assert event.to_address == EXCHANGE
    assert event.token_address == TOKEN
    assert event.tx_hash == log.transactionHash.lower()
    assert event.timestamp == FIXED_TIME


def test_decode_outflow_with_uppercase_log_address(decoder):
    log = make_log(from_address=EXCHANGE, to_address=BOB, value=10 ** 18)
    log.address = "0x" + log.address[2:].upper()
    event = decoder.decode(log)
    assert event.direction is Direction.OUT
    assert event.amount == Decimal(1)


def test_uses_configured_decimals():
    decoder = TransferDecoder({TOKEN: 6}, WATCHED)
    event = decoder.decode(make_log(value=2_500_000))
    assert event.amount == Decimal("2.5")


def test_zero_value_transfer_is_kept(decoder):
    event = decoder.decode(make_log(value=0))
    assert event.amount == Decimal(0)


@pytest.mark.parametrize("log", [
    make_log(from_address=ALICE, to_address=BOB),
    make_log(from_address=EXCHANGE, to_address=EXCHANGE_2),
    make_log(token=OTHER_TOKEN),
    make_log(removed=True),
    make_log(topics=["0x" + "12" * 32, address_topic(ALICE), address_topic(EXCHANGE)]),
    make_log(topics=[]),
])
def test_irrelevant_logs_are_skipped(decoder, log):
    assert decoder.decode(log) is None


@pytest.mark.parametrize("log", [
    # ERC-721 style: token id indexed as a 4th topic
    make_log(topics=[TRANSFER_TOPIC, address_topic(ALICE), address_topic(EXCHANGE), "0x" + "00" * 31 + "01"],
             data="0x"),
    make_log(topics=[TRANSFER_TOPIC, address_topic(ALICE)]),
    make_log(data="0x"),
    make_log(data="0x1234"),
    make_log(data="0xzz"),
    make_log(topics=[TRANSFER_TOPIC, "0x1234", address_topic(EXCHANGE)]),
])
def test_malformed_logs_raise(decoder, log):
    with pytest.raises(MalformedLogError):
        decoder.decode(log)


def test_decode_batch_skips_malformed_and_counts(decoder):
    logs = [
        make_log(value=10 ** 18),
        make_log(data="0x"),
        make_log(from_address=ALICE, to_address=BOB),
        make_log(from_address=EXCHANGE, to_address=ALICE, value=2 * 10 ** 18),
    ]

    events, stats = decoder.decode_batch(logs)

    assert [e.direction for e in events] == [Direction.IN, Direction.OUT]
    assert stats.received == 4
    assert stats.decoded == 2
    assert stats.malformed == 1
    assert stats.skipped == 1


def test_update_watched(decoder):
    log = make_log(from_address=ALICE, to_address=BOB)
    assert decoder.decode(log) is None
    decoder.update_watched([BOB.upper().replace("0X", "0x")])
    assert decoder.decode(log).direction is Direction.IN
