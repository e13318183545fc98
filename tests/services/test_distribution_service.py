"""Tests for the distribution service against an in-memory database."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, delete, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from copany.core.config import DistributionSettings
from copany.domain.distribution import IssueLevel, IssueState
from copany.models import (
    AppStoreFinanceEntry,
    Base,
    Copany,
    CopanyContributor,
    Distribution,
    Issue,
    Transaction,
)
from copany.repositories import DistributionRepository
from copany.services import CopanyNotFoundError, DistributionService, NotCopanyOwnerError


@pytest.fixture()
def session() -> Session:
    """Provide an in-memory database session for each test."""

    engine = create_engine("sqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, future=True, expire_on_commit=False)
    with SessionLocal() as session:
        yield session


@pytest.fixture()
def service() -> DistributionService:
    return DistributionService(DistributionSettings())


def _utc(year: int, month: int, day: int, hour: int = 12) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


def _create_copany(
    session: Session,
    *,
    owner: str = "U1",
    name: str = "Acme",
    helpers: tuple[str, ...] = ("U2",),
    day_of_month: int | None = None,
    delay_days: int | None = None,
) -> Copany:
    copany = Copany(
        name=name,
        created_by=owner,
        distribution_day_of_month=day_of_month,
        distribution_delay_days=delay_days,
    )
    session.add(copany)
    session.flush()
    session.add(CopanyContributor(copany_id=copany.id, user_id=owner, name="Owner", contribution=Decimal("0")))
    for helper in helpers:
        session.add(CopanyContributor(copany_id=copany.id, user_id=helper, name=helper, contribution=Decimal("0")))
    session.commit()
    return copany


def _add_transaction(
    session: Session,
    copany_id: int,
    amount: str,
    occurred_at: datetime,
    *,
    kind: str = "income",
    status: str = "confirmed",
    currency: str = "USD",
) -> None:
    session.add(
        Transaction(
            copany_id=copany_id,
            type=kind,
            amount=Decimal(amount),
            currency=currency,
            status=status,
            occurred_at=occurred_at,
        )
    )
    session.commit()


def _add_issue(session: Session, copany_id: int, assignee: str, level: IssueLevel, closed_at: datetime) -> None:
    session.add(
        Issue(
            copany_id=copany_id,
            title=f"{assignee} work",
            assignee=assignee,
            level=int(level),
            state=int(IssueState.DONE),
            closed_at=closed_at,
        )
    )
    session.commit()


def _add_distribution(session: Session, copany_id: int, month: str, user: str, amount: str) -> None:
    session.add(
        Distribution(
            copany_id=copany_id,
            to_user=user,
            status="in_progress",
            contribution_percent=Decimal("100"),
            amount=Decimal(amount),
            currency="USD",
            distribution_month=month,
        )
    )
    session.commit()


def _stored(session: Session, copany_id: int, month: str) -> dict[str, Decimal]:
    rows = session.execute(
        select(Distribution).where(Distribution.copany_id == copany_id, Distribution.distribution_month == month)
    ).scalars()
    return {row.to_user: Decimal(str(row.amount)) for row in rows}


def test_regenerate_replaces_current_month(session: Session, service: DistributionService) -> None:
    copany = _create_copany(session)
    _add_transaction(session, copany.id, "1000", _utc(2024, 3, 5))
    _add_transaction(session, copany.id, "999", _utc(2024, 2, 20))
    _add_issue(session, copany.id, "U1", IssueLevel.A, _utc(2024, 3, 1))
    _add_issue(session, copany.id, "U2", IssueLevel.B, _utc(2024, 2, 1))
    _add_distribution(session, copany.id, "2024-03", "U9", "55.00")
    _add_distribution(session, copany.id, "2024-02", "U9", "12.00")

    outcome = service.regenerate_current_month(session, copany.id, "U1", now=_utc(2024, 3, 20))

    assert outcome.success
    assert outcome.period_key == "2024-03"
    assert outcome.inserted == 2
    assert outcome.net_income == Decimal("1000")
    assert _stored(session, copany.id, "2024-03") == {"U1": Decimal("750.00"), "U2": Decimal("250.00")}
    assert _stored(session, copany.id, "2024-02") == {"U9": Decimal("12.00")}


def test_regenerate_requires_owner(session: Session, service: DistributionService) -> None:
    copany = _create_copany(session)
    _add_distribution(session, copany.id, "2024-03", "U9", "55.00")

    with pytest.raises(NotCopanyOwnerError):
        service.regenerate_current_month(session, copany.id, "U2", now=_utc(2024, 3, 20))

    assert _stored(session, copany.id, "2024-03") == {"U9": Decimal("55.00")}


def test_regenerate_unknown_copany(session: Session, service: DistributionService) -> None:
    with pytest.raises(CopanyNotFoundError):
        service.regenerate_current_month(session, 404, "U1")


def test_regenerate_is_idempotent(session: Session, service: DistributionService) -> None:
    copany = _create_copany(session)
    _add_transaction(session, copany.id, "500", _utc(2024, 3, 5))
    now = _utc(2024, 3, 20)

    service.regenerate_current_month(session, copany.id, "U1", now=now)
    first = _stored(session, copany.id, "2024-03")
    service.regenerate_current_month(session, copany.id, "U1", now=now)

    assert _stored(session, copany.id, "2024-03") == first == {"U1": Decimal("500.00")}


def test_regenerate_storage_failure_propagates_and_keeps_old_rows(
    session: Session, service: DistributionService, monkeypatch
) -> None:
    copany = _create_copany(session)
    _add_transaction(session, copany.id, "1000", _utc(2024, 3, 5))
    _add_distribution(session, copany.id, "2024-03", "U9", "55.00")

    def _failing(self, copany_id, period_key, records):
        self.session.execute(
            delete(Distribution).where(
                Distribution.copany_id == copany_id, Distribution.distribution_month == period_key
            )
        )
        raise OperationalError("INSERT", {}, Exception("connection lost"))

    monkeypatch.setattr(DistributionRepository, "replace_period", _failing)

    with pytest.raises(OperationalError, match="connection lost"):
        service.regenerate_current_month(session, copany.id, "U1", now=_utc(2024, 3, 20))

    assert _stored(session, copany.id, "2024-03") == {"U9": Decimal("55.00")}


def test_history_processes_each_month_and_skips_paid_or_idle(
    session: Session, service: DistributionService
) -> None:
    copany = _create_copany(session)
    _add_transaction(session, copany.id, "100", _utc(2024, 1, 10))
    _add_transaction(session, copany.id, "400", _utc(2024, 2, 10))
    _add_transaction(session, copany.id, "50", _utc(2024, 5, 10), status="in_review")
    session.add(AppStoreFinanceEntry(copany_id=copany.id, date="2024-04", amount_usd=Decimal("0")))
    session.add(AppStoreFinanceEntry(copany_id=copany.id, date="2024-02", amount_usd=Decimal("25")))
    session.commit()
    _add_issue(session, copany.id, "U2", IssueLevel.C, _utc(2024, 1, 15))
    _add_distribution(session, copany.id, "2024-01", "U1", "80.00")

    outcome = service.recalculate_history(session, copany.id)

    assert [period.period_key for period in outcome.periods] == ["2024-01", "2024-02", "2024-04"]
    january, february, april = outcome.periods
    assert january.skipped and january.reason == "existing_nonzero"
    assert _stored(session, copany.id, "2024-01") == {"U1": Decimal("80.00")}
    assert february.inserted == 2
    assert february.net_income == Decimal("425")
    assert _stored(session, copany.id, "2024-02") == {"U1": Decimal("0.00"), "U2": Decimal("425.00")}
    assert april.skipped and april.reason == "no_activity"
    assert outcome.successful_periods == 3
    assert outcome.total_inserted == 2


def test_history_replaces_zero_amount_records(session: Session, service: DistributionService) -> None:
    copany = _create_copany(session)
    _add_transaction(session, copany.id, "300", _utc(2024, 1, 10))
    _add_distribution(session, copany.id, "2024-01", "U9", "0.00")

    outcome = service.recalculate_history(session, copany.id)

    assert outcome.periods[0].inserted == 1
    assert _stored(session, copany.id, "2024-01") == {"U1": Decimal("300.00")}


def test_history_failure_is_isolated_and_rolled_back(
    session: Session, service: DistributionService, monkeypatch
) -> None:
    copany = _create_copany(session)
    _add_transaction(session, copany.id, "100", _utc(2024, 1, 10))
    _add_transaction(session, copany.id, "200", _utc(2024, 2, 10))
    _add_distribution(session, copany.id, "2024-01", "U9", "0.00")

    original = DistributionRepository.replace_period

    def _flaky(self, copany_id, period_key, records):
        if period_key == "2024-01":
            self.session.execute(
                delete(Distribution).where(
                    Distribution.copany_id == copany_id, Distribution.distribution_month == period_key
                )
            )
            raise OperationalError("INSERT", {}, Exception("disk full"))
        return original(self, copany_id, period_key, records)

    monkeypatch.setattr(DistributionRepository, "replace_period", _flaky)

    outcome = service.recalculate_history(session, copany.id)

    january, february = outcome.periods
    assert not january.success
    assert "disk full" in january.error
    assert february.success and february.inserted == 1
    assert _stored(session, copany.id, "2024-01") == {"U9": Decimal("0.00")}
    assert _stored(session, copany.id, "2024-02") == {"U1": Decimal("200.00")}
    assert outcome.failed_periods == 1


def test_recalculate_all_covers_every_copany(session: Session, service: DistributionService) -> None:
    first = _create_copany(session, name="First")
    second = _create_copany(session, owner="U5", name="Second", helpers=())
    _add_transaction(session, first.id, "10", _utc(2024, 1, 10))
    _add_transaction(session, second.id, "20", _utc(2024, 2, 10))

    seen: list = []
    outcomes = service.recalculate_all(session, on_copany_done=seen.append)

    assert [outcome.name for outcome in outcomes] == ["First", "Second"]
    assert seen == outcomes
    assert _stored(session, first.id, "2024-01") == {"U1": Decimal("10.00")}
    assert _stored(session, second.id, "2024-02") == {"U5": Decimal("20.00")}


def test_scheduled_run_uses_day_and_delay(session: Session, service: DistributionService) -> None:
    due = _create_copany(session, name="Due", day_of_month=15, delay_days=30)
    not_due = _create_copany(session, name="Later", day_of_month=20, delay_days=30)
    _add_transaction(session, due.id, "60", _utc(2024, 5, 3))
    _add_transaction(session, not_due.id, "60", _utc(2024, 5, 3))
    session.add(AppStoreFinanceEntry(copany_id=due.id, date="2024-05", amount_usd=Decimal("40")))
    session.commit()

    outcomes = service.run_scheduled(session, now=_utc(2024, 6, 15))

    assert [outcome.name for outcome in outcomes] == ["Due"]
    assert outcomes[0].periods[0].period_key == "2024-05"
    assert _stored(session, due.id, "2024-05") == {"U1": Decimal("100.00")}
    assert _stored(session, not_due.id, "2024-05") == {}


def test_scheduled_run_defaults_and_skip_policy(session: Session, service: DistributionService) -> None:
    copany = _create_copany(session)
    _add_transaction(session, copany.id, "75", _utc(2024, 3, 3))
    _add_distribution(session, copany.id, "2024-03", "U1", "75.00")

    outcomes = service.run_scheduled(session, now=_utc(2024, 6, 10))

    period = outcomes[0].periods[0]
    assert period.period_key == "2024-03"
    assert period.skipped and period.reason == "existing_nonzero"


def test_list_distributions_filters_by_month(session: Session, service: DistributionService) -> None:
    copany = _create_copany(session)
    _add_distribution(session, copany.id, "2024-03", "U1", "5.00")
    _add_distribution(session, copany.id, "2024-04", "U1", "6.00")

    rows = service.list_distributions(session, copany.id, "2024-04")

    assert [row.distribution_month for row in rows] == ["2024-04"]
    with pytest.raises(ValueError):
        service.list_distributions(session, copany.id, "April")
