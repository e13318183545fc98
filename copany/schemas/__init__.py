"""Pydantic response models."""

from .distributions import CopanyOutcomeSchema, DistributionSchema, PeriodOutcomeSchema

__all__ = ["CopanyOutcomeSchema", "DistributionSchema", "PeriodOutcomeSchema"]
