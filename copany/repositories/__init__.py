"""Repositories wrapping SQLAlchemy access for the service layer."""

from .distribution_repository import DistributionRepository

__all__ = ["DistributionRepository"]
