# tests/test_store.py

import random
from decimal import Decimal

import pytest
from sqlalchemy import text

from netflow.core.errors import ParseError, StorageError
from netflow.types import Direction, ZERO, add_amounts, format_amount, subtract_amounts

from conftest import ALICE, BOB, EXCHANGE, FIXED_TIME, OTHER_TOKEN, TOKEN, make_event, tx_hash


def test_insert_and_aggregate(store):
    events = [make_event("100", Direction.IN), make_event("40", Direction.OUT)]

    result = store.upsert_transfers_and_aggregate(events, to_block=150)

    assert result.inserted == 2
    assert result.duplicates == 0
    aggregate = store.get_netflow(TOKEN)
    assert aggregate.inflow_total == Decimal(100)
    assert aggregate.outflow_total == Decimal(40)
    assert aggregate.cumulative_net == Decimal(60)
    assert aggregate.last_block == 150
    assert aggregate.updated_at == FIXED_TIME


def test_replaying_a_batch_changes_nothing(store):
    events = [make_event("7.25", Direction.IN), make_event("1", Direction.OUT)]
    store.upsert_transfers_and_aggregate(events, to_block=120)
    before = store.get_netflow(TOKEN)

    result = store.upsert_transfers_and_aggregate(events, to_block=120)

    assert result.inserted == 0
    assert result.duplicates == 2
    assert store.count_transfers(TOKEN) == 2
    after = store.get_netflow(TOKEN)
    assert after.inflow_total == before.inflow_total
    assert after.outflow_total == before.outflow_total
    assert after.last_block == before.last_block


def test_redelivered_transfer_counted_once(store):
    # Range 100-110 delivers A and B; the overlapping range 105-115 delivers B again and C.
    a = make_event("100", Direction.IN, block_number=101, tx=tx_hash(0xA))
    b = make_event("50", Direction.OUT, block_number=106, tx=tx_hash(0xB))
    c = make_event("25", Direction.IN, block_number=112, tx=tx_hash(0xC))

    store.upsert_transfers_and_aggregate([a, b], to_block=110)
    result = store.upsert_transfers_and_aggregate([b, c], to_block=115)

    assert result.inserted == 1
    aggregate = store.get_netflow(TOKEN)
    assert aggregate.inflow_total == Decimal(125)
    assert aggregate.outflow_total == Decimal(50)
    assert aggregate.cumulative_net == Decimal(75)
    assert aggregate.last_block == 115


def test_identity_includes_token(store):
    tx = tx_hash(0xD)
    events = [make_event("1", tx=tx, log_index=0, token=TOKEN),
              make_event("2", tx=tx, log_index=0, token=OTHER_TOKEN)]
    result = store.upsert_transfers_and_aggregate(events, to_block=100)
    assert result.inserted == 2
    assert store.get_netflow(OTHER_TOKEN).inflow_total == Decimal(2)


def test_failed_aggregate_update_rolls_back_inserts(store, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("injected failure")

    monkeypatch.setattr("netflow.database.store.aggregate_netflow", explode)

    with pytest.raises(RuntimeError):
        store.upsert_transfers_and_aggregate([make_event("5", Direction.IN)], to_block=200)

    assert store.count_transfers() == 0
    assert store.get_cursor(TOKEN) is None


def test_database_failure_becomes_storage_error(store, db_manager):
    with db_manager.get_transaction() as session:
        session.execute(text("DROP TABLE netflows"))

    with pytest.raises(StorageError):
        store.upsert_transfers_and_aggregate([make_event("5", Direction.IN)], to_block=200)
    assert store.count_transfers() == 0


def test_randomized_batches_are_exact(store):
    rng = random.Random(20240101)
    expected_in = expected_out = ZERO
    all_events = []

    for batch_no in range(20):
        batch = []
        for i in range(rng.randint(0, 15)):
            amount = Decimal(rng.randint(0, 10 ** 24)).scaleb(-18)
            direction = rng.choice([Direction.IN, Direction.OUT])
            event = make_event(format_amount(amount), direction,
                               block_number=batch_no * 10 + 1, log_index=i)
            batch.append(event)
            if direction is Direction.IN:
                expected_in = add_amounts(expected_in, amount)
            else:
                expected_out = add_amounts(expected_out, amount)
        # Replay a random earlier event to exercise dedup
        if all_events:
            batch.append(rng.choice(all_events))
        all_events.extend(batch)
        store.upsert_transfers_and_aggregate(batch, to_block=batch_no * 10 + 9, token_addresses=[TOKEN])

    aggregate = store.get_netflow(TOKEN)
    assert aggregate.inflow_total == expected_in
    assert aggregate.outflow_total == expected_out
    assert aggregate.cumulative_net == subtract_amounts(expected_in, expected_out)

    recomputed = store.recompute_totals(TOKEN)
    assert recomputed.inflow_total == aggregate.inflow_total
    assert recomputed.outflow_total == aggregate.outflow_total


def test_cursor_advances_without_events(store):
    store.upsert_transfers_and_aggregate([], to_block=500, token_addresses=[TOKEN])
    assert store.get_cursor(TOKEN) == 500
    assert store.get_netflow(TOKEN).cumulative_net == ZERO


def test_cursor_never_moves_backwards(store):
    store.upsert_transfers_and_aggregate([], to_block=500, token_addresses=[TOKEN])
    store.upsert_transfers_and_aggregate([], to_block=400, token_addresses=[TOKEN])
    assert store.get_cursor(TOKEN) == 500


def test_list_transfers_newest_first(store):
    events = [
        make_event("1", block_number=100, log_index=0),
        make_event("2", block_number=101, log_index=0),
        make_event("3", block_number=101, log_index=5),
        make_event("4", block_number=99, log_index=9),
    ]
    store.upsert_transfers_and_aggregate(events, to_block=101)

    listed = store.list_transfers(TOKEN, limit=3)

    assert [format_amount(e.amount) for e in listed] == ["3", "2", "1"]
    assert [format_amount(e.amount) for e in store.list_transfers(TOKEN, limit=10, offset=3)] == ["4"]
    assert listed[0].timestamp == FIXED_TIME


def test_amounts_round_trip_exactly(store):
    amount = "115792089237316195423570985008687907853269984665640564039457.584007913129639935"
    store.upsert_transfers_and_aggregate([make_event(amount)], to_block=1)
    assert format_amount(store.list_transfers(TOKEN, limit=1)[0].amount) == amount
    assert format_amount(store.get_netflow(TOKEN).inflow_total) == amount


def test_unknown_token_has_zero_netflow(store):
    aggregate = store.get_netflow("0x" + "9" * 40)
    assert aggregate.inflow_total == ZERO
    assert aggregate.outflow_total == ZERO
    assert aggregate.cumulative_net == ZERO
    assert aggregate.last_block == 0
    assert aggregate.updated_at is None


@pytest.mark.parametrize("amount", ["-1", "-0.000000000000000001"])
def test_negative_amount_rejected(amount):
    with pytest.raises(ParseError):
        make_event(amount)


def test_sync_watched_addresses(store):
    assert store.sync_watched_addresses([(EXCHANGE, "hot wallet"), (ALICE, None)]) == (2, 0)
    assert store.sync_watched_addresses([(EXCHANGE, "cold wallet"), (BOB, None)]) == (1, 1)
    assert store.get_watched_addresses() == {EXCHANGE: "cold wallet", BOB: None}


def test_cursors_per_token(store):
    store.upsert_transfers_and_aggregate([], to_block=10, token_addresses=[TOKEN])
    store.upsert_transfers_and_aggregate([], to_block=20, token_addresses=[OTHER_TOKEN])
    assert store.get_cursors() == {TOKEN: 10, OTHER_TOKEN: 20}


def test_raw_row_is_stored_once(store, db_manager):
    event = make_event("3", Direction.OUT, tx=tx_hash(0xE), log_index=4)
    store.upsert_transfers_and_aggregate([event, event], to_block=100)

    with db_manager.get_session() as session:
        row = store.transfers.get_by_key(session, event.tx_hash.upper().replace("0X", "0x"), 4, TOKEN)
        assert row is not None
        assert row.direction == "OUT"
        assert row.from_address == EXCHANGE
    assert store.count_transfers(TOKEN) == 1
