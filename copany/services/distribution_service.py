"""Service orchestrating distribution recomputes over the repository."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from copany.core.config import DistributionSettings
from copany.core.logger import get_logger, log_context, timeit
from copany.db.session import transactional
from copany.domain.distribution import (
    DistributionCalculator,
    Period,
    RateLookup,
    enumerate_periods,
    has_activity,
    should_skip,
    sum_external_revenue,
)
from copany.domain.distribution.period import as_utc
from copany.domain.distribution.policy import EXISTING_NONZERO, NO_ACTIVITY
from copany.models import Copany, Distribution
from copany.repositories import DistributionRepository

from .errors import CopanyNotFoundError, NotCopanyOwnerError
from .locks import CopanyLockRegistry, copany_locks

LOGGER = get_logger(__name__)

MAX_REASONABLE_DELAY_DAYS = 365


@dataclass(slots=True)
class PeriodOutcome:
    period_key: str
    success: bool = True
    inserted: int = 0
    net_income: Decimal = Decimal(0)
    currency: str | None = None
    skipped: bool = False
    reason: str | None = None
    error: str | None = None


@dataclass(slots=True)
class CopanyOutcome:
    copany_id: int
    name: str
    periods: list[PeriodOutcome] = field(default_factory=list)
    error: str | None = None

    @property
    def total_inserted(self) -> int:
        return sum(outcome.inserted for outcome in self.periods)

    @property
    def successful_periods(self) -> int:
        return sum(1 for outcome in self.periods if outcome.success)

    @property
    def failed_periods(self) -> int:
        return sum(1 for outcome in self.periods if not outcome.success)

    @property
    def success(self) -> bool:
        return self.error is None and self.failed_periods == 0


class DistributionService:
    """Recompute and store copany distributions.

    Three entry points share one per-period pipeline: the owner's current-month
    regenerate (always replaces), the historical recompute and the scheduled
    monthly run (both leave periods with non-zero stored amounts untouched).
    """

    def __init__(
        self,
        settings: DistributionSettings | None = None,
        calculator: DistributionCalculator | None = None,
        locks: CopanyLockRegistry | None = None,
    ) -> None:
        self.settings = settings or DistributionSettings()
        self.calculator = calculator or DistributionCalculator(
            zero_score_policy=self.settings.zero_score_policy,
            default_currency=self.settings.default_currency,
        )
        self.locks = locks or copany_locks

    # Reads ----------------------------------------------------------------------

    def list_distributions(self, session: Session, copany_id: int, period_key: str | None = None) -> list[Distribution]:
        repository = DistributionRepository(session)
        if repository.get_copany(copany_id) is None:
            raise CopanyNotFoundError(copany_id)
        if period_key is not None:
            period_key = Period.from_key(period_key).key
        return repository.list_distributions(copany_id, period_key)

    def require_owner(self, session: Session, copany_id: int, user_id: str) -> Copany:
        """Return the copany when ``user_id`` created it; raise otherwise."""

        copany = DistributionRepository(session).get_copany(copany_id)
        if copany is None:
            raise CopanyNotFoundError(copany_id)
        if copany.created_by != user_id:
            LOGGER.warning("User %s denied recompute of copany %s", user_id, copany_id)
            raise NotCopanyOwnerError(copany_id, user_id)
        return copany

    # Entry points -------------------------------------------------------------

    def regenerate_current_month(
        self,
        session: Session,
        copany_id: int,
        user_id: str,
        now: datetime | None = None,
    ) -> PeriodOutcome:
        """Replace the current month's records of a copany, on behalf of its owner.

        Storage errors propagate to the caller.
        """

        copany = self.require_owner(session, copany_id, user_id)
        period = Period.containing(now or datetime.now(timezone.utc))
        LOGGER.info("Regenerating distributions for copany %s, %s", copany.id, period.key)
        return self._process_period(
            session,
            copany.id,
            copany.created_by,
            period,
            apply_skip_policy=False,
            skip_inactive=False,
            include_external=False,
            raise_errors=True,
        )

    def recalculate_history(
        self,
        session: Session,
        copany_id: int,
        rate_lookup: RateLookup | None = None,
    ) -> CopanyOutcome:
        """Recompute every month with confirmed transactions or external revenue, oldest first."""

        repository = DistributionRepository(session)
        copany = repository.get_copany(copany_id)
        if copany is None:
            raise CopanyNotFoundError(copany_id)
        return self._recalculate_copany(session, copany.id, copany.name, copany.created_by, rate_lookup)

    def recalculate_all(
        self,
        session: Session,
        rate_lookup: RateLookup | None = None,
        on_copany_done: Callable[[CopanyOutcome], None] | None = None,
    ) -> list[CopanyOutcome]:
        """Run ``recalculate_history`` for every copany; failures are reported per copany."""

        copanies = [
            (copany.id, copany.name, copany.created_by)
            for copany in DistributionRepository(session).list_copanies()
        ]
        outcomes: list[CopanyOutcome] = []
        with timeit("Historical distribution recompute", logger=LOGGER, unit="copanies", total=len(copanies)):
            for copany_id, name, owner_id in copanies:
                outcome = self._recalculate_copany(session, copany_id, name, owner_id, rate_lookup)
                outcomes.append(outcome)
                if on_copany_done is not None:
                    on_copany_done(outcome)
        return outcomes

    def run_scheduled(
        self,
        session: Session,
        now: datetime | None = None,
        rate_lookup: RateLookup | None = None,
    ) -> list[CopanyOutcome]:
        """Recompute the delayed month of every copany whose distribution day is today (UTC)."""

        now = as_utc(now or datetime.now(timezone.utc))
        repository = DistributionRepository(session)
        copanies = repository.copanies_due(now.day, self.settings.default_day_of_month)
        LOGGER.info("Scheduled run for day %s: %s copanies due", now.day, len(copanies))

        # Snapshot attributes; a failed period rolls back and expires the loaded rows.
        due = [
            (copany.id, copany.name, copany.created_by, copany.distribution_delay_days)
            for copany in copanies
        ]

        outcomes: list[CopanyOutcome] = []
        with timeit("Scheduled distribution run", logger=LOGGER, unit="copanies", total=len(due)):
            for copany_id, name, owner_id, delay_days in due:
                if delay_days is None:
                    delay_days = self.settings.default_delay_days
                if delay_days > MAX_REASONABLE_DELAY_DAYS:
                    LOGGER.warning(
                        "Copany %s has distribution_delay_days=%s (about %s months); computing a month far in the past",
                        copany_id,
                        delay_days,
                        round(delay_days / 30),
                    )
                period = Period.delayed(now, delay_days)
                outcome = CopanyOutcome(copany_id=copany_id, name=name)
                outcome.periods.append(
                    self._process_period(
                        session,
                        copany_id,
                        owner_id,
                        period,
                        apply_skip_policy=True,
                        skip_inactive=False,
                        include_external=True,
                        rate_lookup=rate_lookup,
                    )
                )
                outcomes.append(outcome)
        return outcomes

    # Pipeline -------------------------------------------------------------------

    def _recalculate_copany(
        self,
        session: Session,
        copany_id: int,
        name: str,
        owner_id: str,
        rate_lookup: RateLookup | None,
    ) -> CopanyOutcome:
        outcome = CopanyOutcome(copany_id=copany_id, name=name)
        repository = DistributionRepository(session)
        try:
            period_keys = enumerate_periods(
                repository.fetch_transactions(copany_id),
                repository.fetch_external_revenue(copany_id),
            )
        except (SQLAlchemyError, ValueError) as exc:
            session.rollback()
            LOGGER.exception("Could not enumerate periods for copany %s", copany_id)
            outcome.error = str(exc)
            return outcome

        LOGGER.info("Copany %s (%s): %s periods to recompute", copany_id, name, len(period_keys))
        with timeit(f"Recompute copany {copany_id}", logger=LOGGER, total=len(period_keys)):
            for key in period_keys:
                outcome.periods.append(
                    self._process_period(
                        session,
                        copany_id,
                        owner_id,
                        Period.from_key(key),
                        apply_skip_policy=True,
                        skip_inactive=True,
                        include_external=True,
                        rate_lookup=rate_lookup,
                    )
                )
        return outcome

    def _process_period(
        self,
        session: Session,
        copany_id: int,
        owner_id: str,
        period: Period,
        *,
        apply_skip_policy: bool,
        skip_inactive: bool,
        include_external: bool,
        rate_lookup: RateLookup | None = None,
        raise_errors: bool = False,
    ) -> PeriodOutcome:
        with self.locks.hold(copany_id), log_context.scoped(copany_id=copany_id, period=period.key):
            try:
                with transactional(session):
                    return self._replace_period(
                        DistributionRepository(session),
                        copany_id,
                        owner_id,
                        period,
                        apply_skip_policy=apply_skip_policy,
                        skip_inactive=skip_inactive,
                        include_external=include_external,
                        rate_lookup=rate_lookup,
                    )
            except (SQLAlchemyError, ValueError) as exc:
                if raise_errors:
                    raise
                LOGGER.exception("Failed to recompute %s", period.key)
                return PeriodOutcome(period_key=period.key, success=False, error=str(exc))

    def _replace_period(
        self,
        repository: DistributionRepository,
        copany_id: int,
        owner_id: str,
        period: Period,
        *,
        apply_skip_policy: bool,
        skip_inactive: bool,
        include_external: bool,
        rate_lookup: RateLookup | None,
    ) -> PeriodOutcome:
        repository.lock_copany(copany_id)

        transactions = repository.fetch_transactions(copany_id, period.start, period.end)
        external_income = Decimal(0)
        currency = self.calculator.resolve_currency(self.calculator.in_period(transactions, period))
        if include_external:
            external_income = sum_external_revenue(
                repository.fetch_external_revenue(copany_id, period.key), currency, rate_lookup
            )

        result = self.calculator.compute(
            period,
            transactions,
            repository.fetch_completed_issues(copany_id, period.cutoff),
            repository.fetch_contributors(copany_id),
            owner_id,
            external_income=external_income,
            copany_id=str(copany_id),
        )

        if skip_inactive and not has_activity(result.total_income, result.total_expense):
            LOGGER.info("Skipping %s: no income or expense", period.key)
            return PeriodOutcome(
                period_key=period.key,
                net_income=result.net_income,
                currency=result.currency,
                skipped=True,
                reason=NO_ACTIVITY,
            )

        if apply_skip_policy and should_skip(
            repository.fetch_distribution_amounts(copany_id, period.key), self.settings.skip_epsilon
        ):
            LOGGER.info("Skipping %s: stored distributions already carry amounts", period.key)
            return PeriodOutcome(
                period_key=period.key,
                net_income=result.net_income,
                currency=result.currency,
                skipped=True,
                reason=EXISTING_NONZERO,
            )

        inserted = repository.replace_period(copany_id, period.key, result.records)
        LOGGER.info(
            "Stored %s distributions for %s (net %s %s)",
            inserted,
            period.key,
            result.net_income,
            result.currency,
        )
        return PeriodOutcome(
            period_key=period.key,
            inserted=inserted,
            net_income=result.net_income,
            currency=result.currency,
        )
