"""Exceptions raised by the distribution service layer."""
from __future__ import annotations


class DistributionError(Exception):
    """Base class for distribution failures callers are expected to handle."""


class CopanyNotFoundError(DistributionError):
    def __init__(self, copany_id: int) -> None:
        super().__init__(f"Copany {copany_id} not found")
        self.copany_id = copany_id


class NotCopanyOwnerError(DistributionError):
    """Raised when someone other than the copany creator asks for a recompute."""

    def __init__(self, copany_id: int, user_id: str) -> None:
        super().__init__(f"User {user_id} is not the owner of copany {copany_id}")
        self.copany_id = copany_id
        self.user_id = user_id
