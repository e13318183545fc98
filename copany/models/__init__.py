"""Database models for copany finance and contribution data."""
from __future__ import annotations

from .base import Base
from .copany import Copany, CopanyContributor
from .finance import AppStoreFinanceEntry, Distribution, Transaction
from .issues import Issue

__all__ = [
    "Base",
    "AppStoreFinanceEntry",
    "Copany",
    "CopanyContributor",
    "Distribution",
    "Issue",
    "Transaction",
]
