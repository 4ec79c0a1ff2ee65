"""Fixed-point conversion between raw on-chain integers and human amounts."""

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext
from typing import Union


def format_units(raw: int, decimals: int) -> Decimal:
    """Convert a raw integer amount into human units (raw / 10^decimals).

    The result is exact for any raw value, including full uint256 range.
    """
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")
    with localcontext() as ctx:
        ctx.prec = max(28, len(str(abs(raw))) + 1)
        return Decimal(int(raw)).scaleb(-decimals)


def parse_units(amount: Union[str, Decimal, int], decimals: int) -> int:
    """Convert a human amount into a raw integer (amount * 10^decimals).

    Raises:
        ValueError: if the amount is not a number or has more fractional
            digits than the token supports.
    """
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        raise ValueError(f"Not a decimal amount: {amount!r}") from None
    if not value.is_finite():
        raise ValueError(f"Not a finite amount: {amount!r}")

    with localcontext() as ctx:
        ctx.prec = max(28, len(value.as_tuple().digits) + decimals + 1)
        scaled = value.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise ValueError(f"{amount} has more than {decimals} decimal places")
        return int(scaled)


def floor_units(amount: Decimal, decimals: int) -> int:
    """Like parse_units, but truncates digits beyond the token's precision."""
    with localcontext() as ctx:
        ctx.prec = max(28, len(amount.as_tuple().digits) + decimals + 1)
        return int(amount.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))
