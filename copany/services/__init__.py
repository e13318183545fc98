"""Service layer entrypoints for distribution workflows."""

from .distribution_service import CopanyOutcome, DistributionService, PeriodOutcome
from .errors import CopanyNotFoundError, DistributionError, NotCopanyOwnerError
from .locks import CopanyLockRegistry, copany_locks

__all__ = [
    "CopanyLockRegistry",
    "CopanyNotFoundError",
    "CopanyOutcome",
    "DistributionError",
    "DistributionService",
    "NotCopanyOwnerError",
    "PeriodOutcome",
    "copany_locks",
]
