"""Currency helpers for the storefront.

All amounts are whole West African CFA francs (XOF, displayed "FCFA").
The currency has no minor unit, so prices, fees and totals are plain ints.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

CURRENCY_CODE: str = "XOF"
CURRENCY_LABEL: str = "FCFA"

# fr-FR groups thousands with a narrow no-break space.
_GROUP_SEPARATOR = " "


def to_amount(value: float | int | str | Decimal | None) -> int:
    """Coerce a catalog or payload value to whole francs (round half-up)."""
    if value is None or value == "":
        return 0
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_fcfa(amount: float | int) -> str:
    """Format an amount the way the storefront displays it: '50 000 FCFA'.

    Negative values are clamped to zero.
    """
    value = max(0, to_amount(amount))
    return f"{value:,}".replace(",", _GROUP_SEPARATOR) + f" {CURRENCY_LABEL}"
