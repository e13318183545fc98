"""Conversion of externally reported revenue into a period's currency."""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Optional

from copany.core.logger import get_logger

from .entities import ExternalRevenue
from .period import Period

LOGGER = get_logger(__name__)

RateLookup = Callable[[str, date], Optional[Decimal]]

# Approximate; used only when no lookup is injected or the lookup fails.
FALLBACK_RATES_TO_USD: Mapping[str, Decimal] = MappingProxyType(
    {
        "USD": Decimal("1.0"),
        "CNY": Decimal("0.14"),
        "JPY": Decimal("0.0067"),
        "GBP": Decimal("1.27"),
        "EUR": Decimal("1.08"),
        "AUD": Decimal("0.66"),
        "CAD": Decimal("0.73"),
        "KRW": Decimal("0.00075"),
        "INR": Decimal("0.012"),
        "BRL": Decimal("0.19"),
        "MXN": Decimal("0.059"),
        "TWD": Decimal("0.031"),
        "HKD": Decimal("0.128"),
        "SGD": Decimal("0.74"),
        "THB": Decimal("0.027"),
        "MYR": Decimal("0.21"),
        "PHP": Decimal("0.018"),
        "IDR": Decimal("0.000064"),
        "VND": Decimal("0.000041"),
        "NZD": Decimal("0.61"),
        "ZAR": Decimal("0.054"),
        "AED": Decimal("0.27"),
        "SAR": Decimal("0.27"),
        "ILS": Decimal("0.27"),
        "CHF": Decimal("1.11"),
        "SEK": Decimal("0.095"),
        "NOK": Decimal("0.093"),
        "DKK": Decimal("0.14"),
        "PLN": Decimal("0.25"),
        "TRY": Decimal("0.031"),
        "RUB": Decimal("0.011"),
        "CZK": Decimal("0.043"),
        "HUF": Decimal("0.0028"),
        "RON": Decimal("0.22"),
        "CLP": Decimal("0.0011"),
        "ARS": Decimal("0.0012"),
        "COP": Decimal("0.00025"),
        "PEN": Decimal("0.27"),
        "VES": Decimal("0.000028"),
    }
)


def fallback_rate_to_usd(currency: str) -> Decimal:
    rate = FALLBACK_RATES_TO_USD.get(currency.upper())
    if rate is None:
        LOGGER.warning("No fallback rate for %s; assuming 1.0", currency)
        return Decimal(1)
    return rate


def rate_to_usd(currency: str, on_date: date, lookup: RateLookup | None = None) -> Decimal:
    """Return how many USD one unit of ``currency`` was worth on ``on_date``.

    Lookup errors never propagate; the static table is used instead.
    """

    code = (currency or "USD").upper()
    if code == "USD":
        return Decimal(1)
    if lookup is None:
        return fallback_rate_to_usd(code)
    try:
        rate = lookup(code, on_date)
    except Exception as exc:  # noqa: BLE001 - any lookup failure degrades to the table
        LOGGER.warning("Rate lookup for %s on %s failed: %s", code, on_date, exc)
        return fallback_rate_to_usd(code)
    if rate is None:
        LOGGER.warning("Rate lookup for %s on %s returned nothing", code, on_date)
        return fallback_rate_to_usd(code)
    return Decimal(str(rate))


def convert(
    amount: Decimal,
    source_currency: str,
    target_currency: str,
    on_date: date,
    lookup: RateLookup | None = None,
) -> Decimal:
    if (source_currency or "").upper() == (target_currency or "").upper():
        return amount
    usd = amount * rate_to_usd(source_currency, on_date, lookup)
    return usd / rate_to_usd(target_currency, on_date, lookup)


def sum_external_revenue(
    entries: Iterable[ExternalRevenue],
    target_currency: str,
    lookup: RateLookup | None = None,
) -> Decimal:
    """Sum ``entries`` in ``target_currency``, converting through USD at each month's first day."""

    total = Decimal(0)
    for entry in entries:
        on_date = Period.from_key(entry.period_key).first_day
        total += convert(entry.amount, entry.currency, target_currency, on_date, lookup)
    return total
