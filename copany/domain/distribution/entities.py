"""Immutable inputs and outputs of the distribution calculation."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from .enums import DistributionStatus, TransactionStatus, TransactionType
from .period import as_utc


def _field(row: object, name: str, default: Any = None) -> Any:
    if isinstance(row, Mapping):
        return row.get(name, default)
    return getattr(row, name, default)


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal(0)
    return Decimal(str(value))


def _to_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    text_value = str(value).replace("Z", "+00:00")
    return as_utc(datetime.fromisoformat(text_value))


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


@dataclass(frozen=True, slots=True)
class Transaction:
    id: str
    copany_id: str
    type: TransactionType
    amount: Decimal
    currency: str
    status: TransactionStatus
    occurred_at: datetime

    @classmethod
    def from_row(cls, row: object) -> "Transaction":
        occurred_at = _to_datetime(_field(row, "occurred_at"))
        if occurred_at is None:
            raise ValueError(f"Transaction {_field(row, 'id')} has no occurred_at")
        return cls(
            id=str(_field(row, "id")),
            copany_id=str(_field(row, "copany_id")),
            type=TransactionType(_field(row, "type")),
            amount=_to_decimal(_field(row, "amount")),
            currency=str(_field(row, "currency") or "").upper(),
            status=TransactionStatus(_field(row, "status")),
            occurred_at=occurred_at,
        )


@dataclass(frozen=True, slots=True)
class WorkItem:
    """A completed-or-not issue; ``level`` and ``state`` keep the stored integer codes."""

    id: str
    copany_id: str
    assignee: str | None
    level: int | None
    state: int | None
    closed_at: datetime | None

    @classmethod
    def from_row(cls, row: object) -> "WorkItem":
        return cls(
            id=str(_field(row, "id")),
            copany_id=str(_field(row, "copany_id")),
            assignee=_optional_str(_field(row, "assignee")),
            level=_optional_int(_field(row, "level")),
            state=_optional_int(_field(row, "state")),
            closed_at=_to_datetime(_field(row, "closed_at")),
        )


@dataclass(frozen=True, slots=True)
class Contributor:
    user_id: str
    name: str
    baseline_contribution: Decimal = Decimal(0)

    @classmethod
    def from_row(cls, row: object) -> "Contributor":
        return cls(
            user_id=str(_field(row, "user_id")),
            name=str(_field(row, "name") or ""),
            baseline_contribution=_to_decimal(_field(row, "contribution")),
        )


@dataclass(frozen=True, slots=True)
class ExternalRevenue:
    """Revenue reported outside the transaction ledger, keyed by month."""

    period_key: str
    amount: Decimal
    currency: str = "USD"

    @classmethod
    def from_row(cls, row: object) -> "ExternalRevenue":
        """Build from an ``app_store_finance_chart_data`` row (USD amounts)."""

        return cls(
            period_key=str(_field(row, "date")),
            amount=_to_decimal(_field(row, "amount_usd")),
            currency="USD",
        )


@dataclass(frozen=True, slots=True)
class DistributionRecord:
    copany_id: str
    to_user: str
    status: DistributionStatus
    contribution_percent: Decimal
    amount: Decimal
    currency: str
    period_key: str
    evidence_url: str | None = None

    def as_row(self) -> dict[str, Any]:
        """Column values for the ``distribute`` table."""

        return {
            "copany_id": int(self.copany_id) if self.copany_id.isdigit() else self.copany_id,
            "to_user": self.to_user,
            "status": self.status.value,
            "contribution_percent": self.contribution_percent,
            "amount": self.amount,
            "currency": self.currency,
            "evidence_url": self.evidence_url,
            "distribution_month": self.period_key,
        }

    @classmethod
    def from_row(cls, row: object) -> "DistributionRecord":
        return cls(
            copany_id=str(_field(row, "copany_id")),
            to_user=str(_field(row, "to_user")),
            status=DistributionStatus(_field(row, "status")),
            contribution_percent=_to_decimal(_field(row, "contribution_percent")),
            amount=_to_decimal(_field(row, "amount")),
            currency=str(_field(row, "currency")),
            period_key=str(_field(row, "distribution_month")),
            evidence_url=_optional_str(_field(row, "evidence_url")),
        )
