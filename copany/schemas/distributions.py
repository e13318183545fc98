"""Schema definitions for distribution endpoints."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_serializer


class DistributionSchema(BaseModel):
    """A stored payout row."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    copany_id: int
    to_user: str
    status: str
    contribution_percent: Decimal
    amount: Decimal
    currency: str
    evidence_url: str | None = None
    distribution_month: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_serializer("contribution_percent", "amount")
    def _serialize_decimal(self, value: Decimal) -> str:
        return str(value)


class PeriodOutcomeSchema(BaseModel):
    """Result of recomputing one month."""

    model_config = ConfigDict(from_attributes=True)

    period_key: str
    success: bool = True
    inserted: int = 0
    net_income: Decimal = Decimal("0")
    currency: str | None = None
    skipped: bool = False
    reason: str | None = None
    error: str | None = None

    @field_serializer("net_income")
    def _serialize_net_income(self, value: Decimal) -> str:
        return str(value)


class CopanyOutcomeSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    copany_id: int
    name: str
    periods: list[PeriodOutcomeSchema] = []
    total_inserted: int = 0
    successful_periods: int = 0
    error: str | None = None
