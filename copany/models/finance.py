"""ORM models for copany transactions, external revenue and distribution records."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from .base import ID_TYPE, Base


class Transaction(Base):
    """Income or expense recorded against a copany; only confirmed rows are distributed."""

    __tablename__ = "transactions"
    __table_args__ = (Index("ix_transactions_copany_status_occurred", "copany_id", "status", "occurred_at"),)

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    copany_id: Mapped[int] = mapped_column(ID_TYPE, ForeignKey("copany.id"), nullable=False)
    actor_id: Mapped[str | None] = mapped_column(String(64))
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default="USD")
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="in_review")
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    evidence_url: Mapped[str | None] = mapped_column(String(512))


class AppStoreFinanceEntry(Base):
    """Monthly App Store proceeds, already converted to USD by the sync job."""

    __tablename__ = "app_store_finance_chart_data"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    copany_id: Mapped[int] = mapped_column(ID_TYPE, ForeignKey("copany.id"), nullable=False, index=True)
    date: Mapped[str] = mapped_column(String(7), nullable=False)
    amount_usd: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, server_default="0")
    transaction_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")


class Distribution(Base):
    """Derived payout row for one contributor in one copany month."""

    __tablename__ = "distribute"
    __table_args__ = (Index("ix_distribute_copany_month", "copany_id", "distribution_month"),)

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    copany_id: Mapped[int] = mapped_column(ID_TYPE, ForeignKey("copany.id"), nullable=False)
    to_user: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    contribution_percent: Mapped[Decimal] = mapped_column(Numeric(9, 4), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    evidence_url: Mapped[str | None] = mapped_column(String(512))
    distribution_month: Mapped[str] = mapped_column(String(7), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )
