# netflow/aggregate/aggregator.py

from decimal import Decimal
from typing import Iterable

from ..types import (
    Direction,
    NetflowTotals,
    TransferEvent,
    add_amounts,
    subtract_amounts,
)


def aggregate_netflow(inflow_total: Decimal,
                      outflow_total: Decimal,
                      new_events: Iterable[TransferEvent]) -> NetflowTotals:
    """
    Fold newly inserted transfers into the running totals of one token.

    Only events that were actually inserted may be passed in; redelivered
    events must already be filtered out by the caller.
    """
    inflow = inflow_total
    outflow = outflow_total
    for event in new_events:
        if event.direction is Direction.IN:
            inflow = add_amounts(inflow, event.amount)
        elif event.direction is Direction.OUT:
            outflow = add_amounts(outflow, event.amount)
        else:
            raise ValueError(f"Unknown transfer direction: {event.direction!r}")

    return NetflowTotals(
        inflow_total=inflow,
        outflow_total=outflow,
        cumulative_net=subtract_amounts(inflow, outflow),
    )
