"""Calendar-month periods (UTC) and enumeration of the months a copany has data for."""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, TYPE_CHECKING

from copany.core.logger import get_logger

from .enums import TransactionStatus

if TYPE_CHECKING:
    from .entities import ExternalRevenue, Transaction

LOGGER = get_logger(__name__)

_KEY_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken to be UTC already."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def month_key(moment: datetime | date) -> str:
    if isinstance(moment, datetime):
        moment = as_utc(moment)
    return f"{moment.year:04d}-{moment.month:02d}"


@dataclass(frozen=True, slots=True)
class Period:
    """Half-open month window ``[start, end)`` in UTC."""

    key: str
    start: datetime
    end: datetime

    @property
    def cutoff(self) -> datetime:
        """Last instant of the period; work closed at or before it counts."""

        return self.end - timedelta(microseconds=1)

    @property
    def first_day(self) -> date:
        return self.start.date()

    def contains(self, moment: datetime) -> bool:
        return self.start <= as_utc(moment) < self.end

    def next(self) -> "Period":
        return Period.containing(self.end)

    @classmethod
    def from_key(cls, key: str) -> "Period":
        match = _KEY_PATTERN.match(key or "")
        if not match:
            raise ValueError(f"Period key must look like YYYY-MM, got {key!r}")
        year, month = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12:
            raise ValueError(f"Period key has an invalid month: {key!r}")
        start = datetime(year, month, 1, tzinfo=timezone.utc)
        if month == 12:
            end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
        else:
            end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
        return cls(key=key, start=start, end=end)

    @classmethod
    def containing(cls, moment: datetime) -> "Period":
        return cls.from_key(month_key(as_utc(moment)))

    @classmethod
    def delayed(cls, now: datetime, delay_days: int) -> "Period":
        """The month that contained ``now`` minus ``delay_days`` days."""

        return cls.containing(as_utc(now) - timedelta(days=delay_days))


def enumerate_periods(
    transactions: Iterable["Transaction"],
    external_revenue: Iterable["ExternalRevenue"] = (),
) -> list[str]:
    """Return the sorted distinct months found in confirmed transactions and external revenue."""

    keys: set[str] = set()
    for transaction in transactions:
        if transaction.status is TransactionStatus.CONFIRMED:
            keys.add(month_key(transaction.occurred_at))
    for entry in external_revenue:
        try:
            keys.add(Period.from_key(entry.period_key).key)
        except ValueError:
            LOGGER.warning("Ignoring external revenue with malformed month %r", entry.period_key)
    return sorted(keys)
