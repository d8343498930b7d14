"""
Display currency conversion.

Balances are stored in the default currency. Reports can be shown in
another currency using the user's own conversion rates; a rate may be
scoped to a month ("YYYY-MM") or be the month-less default.
"""

from decimal import Decimal
from typing import Iterable, Optional

import structlog

from profiteer.models.ledger import CurrencyRate

logger = structlog.get_logger(__name__)

_ONE = Decimal("1")


def _lookup(
    rates: list[CurrencyRate],
    from_currency: str,
    to_currency: str,
    month: Optional[str],
) -> Optional[Decimal]:
    for rate in rates:
        if rate.month == month and rate.from_currency == from_currency and rate.to_currency == to_currency:
            return rate.rate
    for rate in rates:
        if rate.month == month and rate.from_currency == to_currency and rate.to_currency == from_currency:
            return _ONE / rate.rate
    return None


def resolve_display_rate(
    rates: Iterable[CurrencyRate],
    default_currency: str,
    display_currency: str,
    month: Optional[str] = None,
) -> Decimal:
    """
    Multiplier from the default currency to the display currency.

    Lookup order: same currency, direct rate, inverse rate. A monthly
    lookup that finds nothing falls back to the default rates. With no
    usable rate the amounts are shown unconverted (rate 1).
    """
    source = default_currency.strip().upper()
    target = display_currency.strip().upper()
    if source == target:
        return _ONE

    rates = list(rates)
    found = _lookup(rates, source, target, month)
    if found is None and month is not None:
        found = _lookup(rates, source, target, None)
    if found is not None:
        return found

    logger.warning(
        "currency_rate_missing",
        from_currency=source,
        to_currency=target,
        month=month,
    )
    return _ONE
