"""Status and level codes shared by the distribution domain and the stored rows."""
from __future__ import annotations

from enum import Enum, IntEnum


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionStatus(str, Enum):
    IN_REVIEW = "in_review"
    CONFIRMED = "confirmed"


class DistributionStatus(str, Enum):
    """Lifecycle of a payout row; ``in_review`` is set by the evidence workflow."""

    IN_PROGRESS = "in_progress"
    IN_REVIEW = "in_review"
    CONFIRMED = "confirmed"


class IssueState(IntEnum):
    BACKLOG = 1
    TODO = 2
    IN_PROGRESS = 3
    DONE = 4
    CANCELED = 5
    DUPLICATE = 6
    IN_REVIEW = 7


class IssueLevel(IntEnum):
    """Issue difficulty, stored as a small integer."""

    NONE = 0
    C = 1
    B = 2
    A = 3
    S = 4


class ZeroScorePolicy(str, Enum):
    """Who receives a period's proceeds when nobody has a contribution score."""

    OWNER = "owner"
    BASELINE = "baseline"
