# netflow/types/amount.py
"""
Exact decimal ledger helpers for token amounts and netflow totals.

Every amount that crosses a boundary (RPC, storage, API) goes through
these helpers. Arithmetic runs in ``LEDGER_CONTEXT``, whose traps turn any
rounding or overflow into an ``AmountError``.
"""

import re
from decimal import (
    Context, Decimal, Inexact, InvalidOperation, Overflow, Rounded,
    DivisionByZero, ROUND_HALF_EVEN,
)
from typing import Iterable, Union

from ..core.errors import AmountError, ParseError


LEDGER_PRECISION = 100

LEDGER_CONTEXT = Context(
    prec=LEDGER_PRECISION,
    rounding=ROUND_HALF_EVEN,
    Emax=999999,
    Emin=-999999,
    traps=[Inexact, Rounded, Overflow, InvalidOperation, DivisionByZero],
)

ZERO = Decimal(0)

_CANONICAL = re.compile(r"-?[0-9]+(\.[0-9]+)?")

AmountLike = Union[str, int, Decimal]


def parse_amount(value: AmountLike) -> Decimal:
    """Parse a canonical decimal string (or int/Decimal) into a Decimal."""
    if isinstance(value, bool):
        raise ParseError(f"Not an amount: {value!r}")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ParseError(f"Amount must be finite: {value!r}")
        return value
    if not isinstance(value, str) or not _CANONICAL.fullmatch(value):
        raise ParseError(f"Malformed amount: {value!r}")
    try:
        return LEDGER_CONTEXT.create_decimal(value)
    except (InvalidOperation, Inexact, Rounded, Overflow) as e:
        raise ParseError(f"Amount exceeds ledger precision: {value!r}") from e


def format_amount(value: AmountLike) -> str:
    """Render an amount as a plain decimal string with no exponent."""
    amount = parse_amount(value)
    if amount.is_zero():
        return "0"
    text = format(amount, 'f')
    if '.' in text:
        text = text.rstrip('0').rstrip('.')
    return text


def add_amounts(a: AmountLike, b: AmountLike) -> Decimal:
    try:
        return LEDGER_CONTEXT.add(parse_amount(a), parse_amount(b))
    except (Inexact, Rounded, Overflow, InvalidOperation) as e:
        raise AmountError(f"Cannot add {a} and {b} exactly") from e


def subtract_amounts(a: AmountLike, b: AmountLike) -> Decimal:
    try:
        return LEDGER_CONTEXT.subtract(parse_amount(a), parse_amount(b))
    except (Inexact, Rounded, Overflow, InvalidOperation) as e:
        raise AmountError(f"Cannot subtract {b} from {a} exactly") from e


def sum_amounts(amounts: Iterable[AmountLike]) -> Decimal:
    total = ZERO
    for amount in amounts:
        total = add_amounts(total, amount)
    return total


def from_base_units(raw: int, decimals: int) -> Decimal:
    """Scale a raw integer token value by the token's decimals, exactly."""
    if decimals < 0:
        raise ParseError(f"Token decimals must be non-negative: {decimals}")
    try:
        return LEDGER_CONTEXT.scaleb(Decimal(raw), -decimals)
    except (Inexact, Rounded, Overflow, InvalidOperation) as e:
        raise AmountError(f"Cannot scale {raw} by 10^-{decimals} exactly") from e
