import re
from decimal import Decimal, InvalidOperation

from ..exceptions import InvalidAmountError

_CENTS_RE = re.compile(r"^[+-]?\d+$")


# ----------------------------
# Integer minor-unit helpers
# ----------------------------
def parse_cents(value, field="amount_cents"):
    """
    Coerce an incoming amount to an exact int of minor units.

    Accepts ints, integral Decimals and strings of digits with an optional
    sign. Floats are refused outright; 12.30 cannot be trusted to mean 1230.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidAmountError(f"{field} is required", field=field)

    if isinstance(value, int):
        return value

    if isinstance(value, Decimal):
        if not value.is_finite():
            raise InvalidAmountError(f"{field} must be a finite number", field=field)
        if value != value.to_integral_value():
            raise InvalidAmountError(f"{field} must be whole cents", field=field)
        return int(value)

    if isinstance(value, str):
        text = value.strip()
        if not _CENTS_RE.match(text):
            raise InvalidAmountError(f"{field} must be an integer string", field=field)
        return int(text)

    raise InvalidAmountError(f"{field} must be an integer", field=field)


def parse_positive_cents(value, field="amount_cents"):
    cents = parse_cents(value, field)
    if cents <= 0:
        raise InvalidAmountError(f"{field} must be > 0", field=field)
    return cents


def abs_cents(value):
    return abs(int(value or 0))


def sum_cents(values):
    # exact big-int sum; an empty iterable is 0
    total = 0
    for v in values:
        total += int(v or 0)
    return total


def clamp_non_negative(value):
    return value if value > 0 else 0


def format_cents(value):
    """1234 -> "12.34", -5 -> "-0.05" """
    try:
        amount = Decimal(int(value)) / Decimal(100)
    except (TypeError, ValueError, InvalidOperation):
        raise InvalidAmountError("Cannot format amount", field="amount_cents")
    return str(amount.quantize(Decimal("0.01")))
