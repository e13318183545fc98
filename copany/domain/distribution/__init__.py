"""Revenue distribution: scoring, allocation, periods and replace policy."""

from .calculator import DistributionCalculator, DistributionResult
from .currency import FALLBACK_RATES_TO_USD, RateLookup, rate_to_usd, sum_external_revenue
from .entities import Contributor, DistributionRecord, ExternalRevenue, Transaction, WorkItem
from .enums import (
    DistributionStatus,
    IssueLevel,
    IssueState,
    TransactionStatus,
    TransactionType,
    ZeroScorePolicy,
)
from .period import Period, enumerate_periods, month_key
from .policy import has_activity, should_skip
from .scoring import LEVEL_SCORES, ContributionScorer

__all__ = [
    "FALLBACK_RATES_TO_USD",
    "LEVEL_SCORES",
    "ContributionScorer",
    "Contributor",
    "DistributionCalculator",
    "DistributionRecord",
    "DistributionResult",
    "DistributionStatus",
    "ExternalRevenue",
    "IssueLevel",
    "IssueState",
    "Period",
    "RateLookup",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    "WorkItem",
    "ZeroScorePolicy",
    "enumerate_periods",
    "has_activity",
    "month_key",
    "rate_to_usd",
    "should_skip",
    "sum_external_revenue",
]
