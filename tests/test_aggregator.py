# tests/test_aggregator.py

from decimal import Decimal

import pytest

from netflow.aggregate import aggregate_netflow
from netflow.types import Direction, ZERO

from conftest import make_event


def test_empty_batch_keeps_totals():
    totals = aggregate_netflow(Decimal("5"), Decimal("2"), [])
    assert totals.inflow_total == Decimal(5)
    assert totals.outflow_total == Decimal(2)
    assert totals.cumulative_net == Decimal(3)


def test_folds_inflows_and_outflows():
    events = [
        make_event("100", Direction.IN),
        make_event("40", Direction.OUT),
        make_event("0.5", Direction.IN),
    ]
    totals = aggregate_netflow(ZERO, ZERO, events)
    assert totals.inflow_total == Decimal("100.5")
    assert totals.outflow_total == Decimal(40)
    assert totals.cumulative_net == Decimal("60.5")


def test_net_can_go_negative():
    totals = aggregate_netflow(ZERO, ZERO, [make_event("3", Direction.OUT)])
    assert totals.cumulative_net == Decimal(-3)


def test_unknown_direction_rejected():
    event = make_event("1", Direction.IN)

    class Bogus:
        direction = "SIDEWAYS"
        amount = event.amount

    with pytest.raises(ValueError):
        aggregate_netflow(ZERO, ZERO, [Bogus()])
