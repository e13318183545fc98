"""Tests for the distribution calculator."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from copany.domain.distribution import (
    Contributor,
    DistributionCalculator,
    DistributionStatus,
    IssueLevel,
    IssueState,
    Period,
    Transaction,
    TransactionStatus,
    TransactionType,
    WorkItem,
    ZeroScorePolicy,
)

PERIOD = Period.from_key("2024-03")
MID_MONTH = datetime(2024, 3, 15, tzinfo=timezone.utc)


def _txn(
    amount: str,
    kind: TransactionType = TransactionType.INCOME,
    *,
    currency: str = "USD",
    status: TransactionStatus = TransactionStatus.CONFIRMED,
    occurred_at: datetime = MID_MONTH,
) -> Transaction:
    return Transaction(
        id=f"{kind.value}-{amount}",
        copany_id="1",
        type=kind,
        amount=Decimal(amount),
        currency=currency,
        status=status,
        occurred_at=occurred_at,
    )


def _issue(assignee: str, level: IssueLevel, closed_at: datetime = MID_MONTH) -> WorkItem:
    return WorkItem(
        id=f"{assignee}-{int(level)}",
        copany_id="1",
        assignee=assignee,
        level=int(level),
        state=int(IssueState.DONE),
        closed_at=closed_at,
    )


CONTRIBUTORS = [Contributor("U1", "Owner"), Contributor("U2", "Helper")]


def _amounts(result) -> dict[str, Decimal]:
    return {record.to_user: record.amount for record in result.records}


def test_splits_net_income_by_score() -> None:
    result = DistributionCalculator().compute(
        PERIOD,
        [_txn("1000")],
        [_issue("U1", IssueLevel.A), _issue("U2", IssueLevel.B)],
        CONTRIBUTORS,
        "U1",
        copany_id="1",
    )

    assert result.net_income == Decimal("1000")
    assert result.total_score == 80
    assert _amounts(result) == {"U1": Decimal("750.00"), "U2": Decimal("250.00")}
    percents = {record.to_user: record.contribution_percent for record in result.records}
    assert percents == {"U1": Decimal(75), "U2": Decimal(25)}
    statuses = {record.to_user: record.status for record in result.records}
    assert statuses == {"U1": DistributionStatus.CONFIRMED, "U2": DistributionStatus.IN_PROGRESS}
    assert all(record.period_key == "2024-03" and record.evidence_url is None for record in result.records)
    assert all(record.copany_id == "1" for record in result.records)


def test_zero_score_allocates_everything_to_owner() -> None:
    result = DistributionCalculator().compute(PERIOD, [_txn("500")], [], CONTRIBUTORS, "U1")

    assert len(result.records) == 1
    record = result.records[0]
    assert record.to_user == "U1"
    assert record.amount == Decimal("500.00")
    assert record.contribution_percent == Decimal(100)
    assert record.status is DistributionStatus.CONFIRMED


def test_zero_score_with_loss_gives_owner_zero() -> None:
    result = DistributionCalculator().compute(
        PERIOD, [_txn("100"), _txn("300", TransactionType.EXPENSE)], [], CONTRIBUTORS, "U1"
    )
    assert result.net_income == Decimal("-200")
    assert [(r.to_user, r.amount, r.contribution_percent) for r in result.records] == [
        ("U1", Decimal(0), Decimal(100))
    ]


def test_negative_net_income_keeps_percentages() -> None:
    result = DistributionCalculator().compute(
        PERIOD,
        [_txn("300", TransactionType.EXPENSE), _txn("100")],
        [_issue("U1", IssueLevel.B), _issue("U2", IssueLevel.B)],
        CONTRIBUTORS,
        "U1",
    )

    assert result.net_income == Decimal("-200")
    assert all(record.amount == 0 for record in result.records)
    assert [record.contribution_percent for record in result.records] == [Decimal(50), Decimal(50)]


def test_no_contributors_gives_no_records() -> None:
    result = DistributionCalculator().compute(PERIOD, [_txn("500")], [_issue("U1", IssueLevel.S)], [], "U1")
    assert result.records == ()
    assert result.net_income == Decimal("500")


def test_only_confirmed_transactions_inside_window_count() -> None:
    result = DistributionCalculator().compute(
        PERIOD,
        [
            _txn("100"),
            _txn("50", status=TransactionStatus.IN_REVIEW),
            _txn("70", occurred_at=datetime(2024, 4, 1, tzinfo=timezone.utc)),
            _txn("30", occurred_at=datetime(2024, 3, 1, tzinfo=timezone.utc)),
            _txn("20", TransactionType.EXPENSE),
        ],
        [],
        CONTRIBUTORS,
        "U1",
    )
    assert result.total_income == Decimal("130")
    assert result.total_expense == Decimal("20")
    assert result.net_income == Decimal("110")


def test_work_closed_after_period_is_ignored() -> None:
    result = DistributionCalculator().compute(
        PERIOD,
        [_txn("100")],
        [_issue("U1", IssueLevel.C), _issue("U2", IssueLevel.S, closed_at=PERIOD.end)],
        CONTRIBUTORS,
        "U1",
    )
    assert _amounts(result) == {"U1": Decimal("100.00"), "U2": Decimal("0.00")}


def test_contributor_without_score_gets_zero_record() -> None:
    contributors = CONTRIBUTORS + [Contributor("U3", "Lurker")]
    result = DistributionCalculator().compute(PERIOD, [_txn("90")], [_issue("U2", IssueLevel.A)], contributors, "U1")

    by_user = {record.to_user: record for record in result.records}
    assert by_user["U3"].amount == Decimal("0.00")
    assert by_user["U3"].contribution_percent == Decimal(0)
    assert by_user["U2"].amount == Decimal("90.00")


def test_rounding_stays_within_a_cent_per_contributor() -> None:
    contributors = [Contributor("A", "a"), Contributor("B", "b"), Contributor("C", "c")]
    result = DistributionCalculator().compute(
        PERIOD,
        [_txn("100")],
        [_issue("A", IssueLevel.B), _issue("B", IssueLevel.B), _issue("C", IssueLevel.B)],
        contributors,
        "A",
    )

    assert all(record.amount == Decimal("33.33") for record in result.records)
    assert abs(result.total_amount - result.net_income) <= Decimal("0.01") * len(contributors)
    assert abs(sum(record.contribution_percent for record in result.records) - 100) < Decimal("0.0001")


def test_half_cents_round_up() -> None:
    contributors = [Contributor("A", "a"), Contributor("B", "b")]
    result = DistributionCalculator().compute(
        PERIOD, [_txn("0.05")], [_issue("A", IssueLevel.B), _issue("B", IssueLevel.B)], contributors, "A"
    )
    assert _amounts(result) == {"A": Decimal("0.03"), "B": Decimal("0.03")}


def test_currency_prefers_first_income() -> None:
    calculator = DistributionCalculator(default_currency="EUR")
    mixed = [_txn("10", TransactionType.EXPENSE, currency="GBP"), _txn("20", currency="JPY")]

    assert calculator.compute(PERIOD, mixed, [], CONTRIBUTORS, "U1").currency == "JPY"
    expense_only = [_txn("10", TransactionType.EXPENSE, currency="GBP")]
    assert calculator.compute(PERIOD, expense_only, [], CONTRIBUTORS, "U1").currency == "GBP"
    assert calculator.compute(PERIOD, [], [], CONTRIBUTORS, "U1").currency == "EUR"


def test_external_income_is_added_to_income() -> None:
    result = DistributionCalculator().compute(
        PERIOD, [_txn("100")], [], CONTRIBUTORS, "U1", external_income=Decimal("25.50")
    )
    assert result.total_income == Decimal("125.50")
    assert result.records[0].amount == Decimal("125.50")


def test_baseline_policy_splits_by_contribution_weights() -> None:
    contributors = [Contributor("U1", "Owner", Decimal("3")), Contributor("U2", "Helper", Decimal("1"))]
    calculator = DistributionCalculator(zero_score_policy=ZeroScorePolicy.BASELINE)

    result = calculator.compute(PERIOD, [_txn("400")], [], contributors, "U1")

    assert _amounts(result) == {"U1": Decimal("300.00"), "U2": Decimal("100.00")}


def test_baseline_policy_without_weights_falls_back_to_owner() -> None:
    calculator = DistributionCalculator(zero_score_policy="baseline")

    result = calculator.compute(PERIOD, [_txn("400")], [], CONTRIBUTORS, "U1")

    assert [(r.to_user, r.amount) for r in result.records] == [("U1", Decimal("400.00"))]


def test_recomputing_is_deterministic() -> None:
    calculator = DistributionCalculator()
    args = (PERIOD, [_txn("1000")], [_issue("U1", IssueLevel.A), _issue("U2", IssueLevel.C)], CONTRIBUTORS, "U1")

    first = calculator.compute(*args)
    second = calculator.compute(*args)

    def as_set(result):
        return {(r.to_user, r.amount, r.contribution_percent) for r in result.records}

    assert as_set(first) == as_set(second)
