"""Currency-precision helpers - pure Python, Decimal only."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from ..exceptions import InvalidArgumentError

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")

AmountLike = Union[Decimal, int, str]


def to_currency(value: AmountLike) -> Decimal:
    """
    Quantize a monetary value to two decimal places (ROUND_HALF_UP).

    Floats go through ``str()`` first so 0.1 becomes Decimal("0.10"),
    not the binary expansion.

    Raises:
        InvalidArgumentError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise InvalidArgumentError(f"Not a monetary amount: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidArgumentError(f"Not a monetary amount: {value!r}") from e

    if not amount.is_finite():
        raise InvalidArgumentError(f"Not a monetary amount: {value!r}")
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
