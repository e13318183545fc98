"""Data access for distribution inputs and stored distribution records."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Sequence

from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session

from copany.core.logger import get_logger
from copany.domain.distribution import (
    Contributor,
    DistributionRecord,
    ExternalRevenue,
    IssueState,
    Transaction,
    TransactionStatus,
    WorkItem,
)
from copany.models import AppStoreFinanceEntry, Copany, CopanyContributor, Distribution, Issue
from copany.models import Transaction as TransactionModel

LOGGER = get_logger(__name__)


class DistributionRepository:
    """Reads distribution inputs and replaces the stored records of a copany month."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    # Copanies -----------------------------------------------------------------

    def get_copany(self, copany_id: int) -> Copany | None:
        return self._session.get(Copany, copany_id)

    def lock_copany(self, copany_id: int) -> Copany | None:
        """Load the copany row with ``SELECT ... FOR UPDATE``; a no-op lock on SQLite."""

        return self._session.execute(
            select(Copany).where(Copany.id == copany_id).with_for_update()
        ).scalar_one_or_none()

    def list_copanies(self) -> list[Copany]:
        return list(self._session.execute(select(Copany).order_by(Copany.id)).scalars())

    def copanies_due(self, day_of_month: int, default_day_of_month: int) -> list[Copany]:
        """Copanies whose distribution day is ``day_of_month``; unset days use the default."""

        condition = Copany.distribution_day_of_month == day_of_month
        if day_of_month == default_day_of_month:
            condition = or_(condition, Copany.distribution_day_of_month.is_(None))
        return list(self._session.execute(select(Copany).where(condition).order_by(Copany.id)).scalars())

    # Inputs -------------------------------------------------------------------

    def fetch_transactions(
        self,
        copany_id: int,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Transaction]:
        """Confirmed transactions of a copany, optionally limited to ``[start, end)``."""

        statement = select(TransactionModel).where(
            TransactionModel.copany_id == copany_id,
            TransactionModel.status == TransactionStatus.CONFIRMED.value,
        )
        if start is not None:
            statement = statement.where(TransactionModel.occurred_at >= start)
        if end is not None:
            statement = statement.where(TransactionModel.occurred_at < end)
        statement = statement.order_by(TransactionModel.occurred_at, TransactionModel.id)
        rows = self._session.execute(statement).scalars()
        return [Transaction.from_row(row) for row in rows]

    def fetch_external_revenue(self, copany_id: int, period_key: str | None = None) -> list[ExternalRevenue]:
        statement = select(AppStoreFinanceEntry).where(AppStoreFinanceEntry.copany_id == copany_id)
        if period_key is not None:
            statement = statement.where(AppStoreFinanceEntry.date == period_key)
        rows = self._session.execute(statement.order_by(AppStoreFinanceEntry.date)).scalars()
        return [ExternalRevenue.from_row(row) for row in rows]

    def fetch_contributors(self, copany_id: int) -> list[Contributor]:
        rows = self._session.execute(
            select(CopanyContributor)
            .where(CopanyContributor.copany_id == copany_id)
            .order_by(CopanyContributor.id)
        ).scalars()
        return [Contributor.from_row(row) for row in rows]

    def fetch_completed_issues(self, copany_id: int, cutoff: datetime | None = None) -> list[WorkItem]:
        """Done, assigned issues closed at or before ``cutoff``."""

        statement = select(Issue).where(
            Issue.copany_id == copany_id,
            Issue.state == int(IssueState.DONE),
            Issue.assignee.is_not(None),
            Issue.closed_at.is_not(None),
        )
        if cutoff is not None:
            statement = statement.where(Issue.closed_at <= cutoff)
        rows = self._session.execute(statement.order_by(Issue.id)).scalars()
        return [WorkItem.from_row(row) for row in rows]

    # Distribution records -----------------------------------------------------

    def fetch_distribution_amounts(self, copany_id: int, period_key: str) -> list[Decimal]:
        rows = self._session.execute(
            select(Distribution.amount).where(
                Distribution.copany_id == copany_id,
                Distribution.distribution_month == period_key,
            )
        ).scalars()
        return [Decimal(str(amount)) for amount in rows]

    def list_distributions(self, copany_id: int, period_key: str | None = None) -> list[Distribution]:
        statement = select(Distribution).where(Distribution.copany_id == copany_id)
        if period_key is not None:
            statement = statement.where(Distribution.distribution_month == period_key)
        statement = statement.order_by(Distribution.distribution_month.desc(), Distribution.id)
        return list(self._session.execute(statement).scalars())

    def replace_period(
        self,
        copany_id: int,
        period_key: str,
        records: Iterable[DistributionRecord],
    ) -> int:
        """Delete every record of ``(copany_id, period_key)`` and insert ``records``.

        Runs inside the caller's transaction; nothing is committed here.
        """

        deleted = self._session.execute(
            delete(Distribution).where(
                Distribution.copany_id == copany_id,
                Distribution.distribution_month == period_key,
            )
        ).rowcount
        rows: Sequence[Distribution] = [
            Distribution(**{**record.as_row(), "copany_id": copany_id}) for record in records
        ]
        self._session.add_all(rows)
        self._session.flush()
        LOGGER.debug(
            "Replaced distributions for copany %s %s: deleted=%s inserted=%s",
            copany_id,
            period_key,
            deleted,
            len(rows),
        )
        return len(rows)
