import re
from decimal import (
    Context,
    Decimal,
    DivisionByZero,
    Inexact,
    InvalidOperation,
    Overflow,
    ROUND_HALF_EVEN,
)

from transfer_ledger.errors import ErrorKind, LedgerError

# what NUMERIC(38, 8) holds
MAX_INTEGER_DIGITS = 30
MAX_FRACTION_DIGITS = 8

# wide enough that sums of any two storable values are exact
CONTEXT = Context(
    prec=60,
    rounding=ROUND_HALF_EVEN,
    traps=[InvalidOperation, Inexact, Overflow, DivisionByZero],
)

_LITERAL = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

ZERO = Decimal(0)


def parse_decimal(text: str, field: str | None = None) -> Decimal:
    """Parse a plain base-10 numeral that fits the stored precision."""
    if not isinstance(text, str) or not _LITERAL.fullmatch(text):
        raise LedgerError(ErrorKind.INVALID_AMOUNT_FORMAT, field)
    try:
        value = Decimal(text)
    except InvalidOperation:
        # exponent outside the decimal module's range
        raise LedgerError(ErrorKind.INVALID_AMOUNT_FORMAT, field) from None
    if value.is_zero():
        return ZERO
    if not fits(value):
        raise LedgerError(ErrorKind.INVALID_AMOUNT_FORMAT, field)
    return value


def fits(value: Decimal) -> bool:
    if value.is_zero():
        return True
    _, digits, exponent = value.as_tuple()
    significant = len(digits)
    while digits[significant - 1] == 0:
        significant -= 1
        exponent += 1
    return (
        exponent >= -MAX_FRACTION_DIGITS
        and significant + exponent <= MAX_INTEGER_DIGITS
    )


def render(value: Decimal) -> str:
    if value.is_zero():
        return "0"
    return format(value.normalize(CONTEXT), "f")


def add(a: Decimal, b: Decimal) -> Decimal:
    return CONTEXT.add(a, b)


def subtract(a: Decimal, b: Decimal) -> Decimal:
    return CONTEXT.subtract(a, b)


def is_negative(value: Decimal) -> bool:
    # Decimal("-0").is_signed() is True, so compare instead
    return value < ZERO


def is_positive(value: Decimal) -> bool:
    return value > ZERO
