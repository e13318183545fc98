"""Pure computation of a period's revenue distribution."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Mapping, Sequence

from copany.core.logger import get_logger

from .entities import Contributor, DistributionRecord, Transaction, WorkItem
from .enums import DistributionStatus, TransactionStatus, TransactionType, ZeroScorePolicy
from .period import Period
from .scoring import ContributionScorer

LOGGER = get_logger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal(100)
ZERO = Decimal(0)


def quantize_amount(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class DistributionResult:
    period_key: str
    net_income: Decimal
    currency: str
    total_income: Decimal
    total_expense: Decimal
    total_score: int
    records: tuple[DistributionRecord, ...] = field(default_factory=tuple)

    @property
    def total_amount(self) -> Decimal:
        return sum((record.amount for record in self.records), ZERO)


class DistributionCalculator:
    """Split a period's net income between contributors by contribution score."""

    def __init__(
        self,
        zero_score_policy: ZeroScorePolicy | str = ZeroScorePolicy.OWNER,
        default_currency: str = "USD",
        scorer: ContributionScorer | None = None,
    ) -> None:
        self.zero_score_policy = ZeroScorePolicy(zero_score_policy)
        self.default_currency = default_currency
        self.scorer = scorer or ContributionScorer()

    @staticmethod
    def in_period(transactions: Iterable[Transaction], period: Period) -> list[Transaction]:
        """Confirmed transactions whose ``occurred_at`` falls inside ``period``."""

        return [
            transaction
            for transaction in transactions
            if transaction.status is TransactionStatus.CONFIRMED and period.contains(transaction.occurred_at)
        ]

    def resolve_currency(self, transactions: Sequence[Transaction]) -> str:
        for transaction in transactions:
            if transaction.type is TransactionType.INCOME and transaction.currency:
                return transaction.currency
        for transaction in transactions:
            if transaction.currency:
                return transaction.currency
        return self.default_currency

    def compute(
        self,
        period: Period,
        transactions: Iterable[Transaction],
        work_items: Iterable[WorkItem],
        contributors: Sequence[Contributor],
        owner_id: str,
        *,
        external_income: Decimal = ZERO,
        copany_id: str = "",
    ) -> DistributionResult:
        """Compute the records for one copany and period.

        ``external_income`` is revenue already converted to the period currency
        and is added to the income total.
        """

        kept = self.in_period(transactions, period)
        total_income = sum((t.amount for t in kept if t.type is TransactionType.INCOME), ZERO) + external_income
        total_expense = sum((t.amount for t in kept if t.type is TransactionType.EXPENSE), ZERO)
        net_income = total_income - total_expense
        currency = self.resolve_currency(kept)

        scores = self.scorer.score(work_items, cutoff=period.cutoff)
        total_score = sum(scores.values())

        LOGGER.debug(
            "Period %s: income=%s expense=%s net=%s %s, total_score=%s, contributors=%s",
            period.key,
            total_income,
            total_expense,
            net_income,
            currency,
            total_score,
            len(contributors),
        )

        records: list[DistributionRecord] = []
        if not contributors:
            LOGGER.info("No contributors for period %s; nothing to distribute", period.key)
        elif total_score == 0:
            records = self._zero_score_records(period, copany_id, contributors, owner_id, net_income, currency)
        else:
            records = self._allocate(
                period, copany_id, contributors, scores, total_score, owner_id, net_income, currency
            )

        return DistributionResult(
            period_key=period.key,
            net_income=net_income,
            currency=currency,
            total_income=total_income,
            total_expense=total_expense,
            total_score=total_score,
            records=tuple(records),
        )

    def _zero_score_records(
        self,
        period: Period,
        copany_id: str,
        contributors: Sequence[Contributor],
        owner_id: str,
        net_income: Decimal,
        currency: str,
    ) -> list[DistributionRecord]:
        if self.zero_score_policy is ZeroScorePolicy.BASELINE:
            weights = {c.user_id: c.baseline_contribution for c in contributors if c.baseline_contribution > 0}
            total_weight = sum(weights.values(), ZERO)
            if total_weight > 0:
                return self._allocate(
                    period, copany_id, contributors, weights, total_weight, owner_id, net_income, currency
                )
            LOGGER.info("Baseline weights sum to 0 for period %s; falling back to owner", period.key)

        amount = quantize_amount(net_income) if net_income > 0 else ZERO
        return [
            DistributionRecord(
                copany_id=copany_id,
                to_user=owner_id,
                status=DistributionStatus.CONFIRMED,
                contribution_percent=HUNDRED,
                amount=amount,
                currency=currency,
                period_key=period.key,
            )
        ]

    def _allocate(
        self,
        period: Period,
        copany_id: str,
        contributors: Sequence[Contributor],
        weights: Mapping[str, int | Decimal],
        total_weight: int | Decimal,
        owner_id: str,
        net_income: Decimal,
        currency: str,
    ) -> list[DistributionRecord]:
        total = Decimal(total_weight)
        records = []
        for contributor in contributors:
            ratio = Decimal(weights.get(contributor.user_id, 0)) / total
            amount = quantize_amount(net_income * ratio) if net_income > 0 else ZERO
            records.append(
                DistributionRecord(
                    copany_id=copany_id,
                    to_user=contributor.user_id,
                    status=DistributionStatus.CONFIRMED
                    if contributor.user_id == owner_id
                    else DistributionStatus.IN_PROGRESS,
                    contribution_percent=ratio * HUNDRED,
                    amount=amount,
                    currency=currency,
                    period_key=period.key,
                )
            )
        return records
