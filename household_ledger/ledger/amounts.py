"""
Amount parsing.

User input arrives as free text. These helpers decide what counts as
an amount and what the ledger is allowed to persist.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from household_ledger.models.ledger import DayInputState


CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def parse_amount(raw) -> Optional[Decimal]:
    """
    Parse user input into a two-decimal amount.

    Returns None for blank, non-numeric, NaN or infinite input, and for
    values too large to keep at cent precision.
    Negative and zero values parse; callers decide whether to keep them.
    """
    if raw is None:
        return None
    if isinstance(raw, Decimal):
        value = raw
    else:
        text = str(raw).strip()
        if not text:
            return None
        try:
            value = Decimal(text)
        except InvalidOperation:
            return None
    if not value.is_finite():
        return None
    try:
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # Too many digits to hold at cent precision
        return None


def persistable_amount(raw) -> Optional[Decimal]:
    """The parsed amount if the ledger may store it (strictly positive)."""
    value = parse_amount(raw)
    if value is None or value <= 0:
        return None
    return value


def coerce_amount(raw) -> Decimal:
    """Parse leniently for summing: anything unusable counts as zero."""
    value = parse_amount(raw)
    return value if value is not None else ZERO


def format_amount(value: Decimal) -> str:
    """Render an amount the way it is shown in the input form."""
    try:
        return str(value.quantize(CENT, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return str(value)


def daily_total(state: DayInputState) -> Decimal:
    """
    Running total of the day being edited.

    Computed on demand from the input state. Only amounts that a save
    would persist are counted.
    """
    total = ZERO
    for raw in state.values():
        value = persistable_amount(raw)
        if value is not None:
            total += value
    return total
