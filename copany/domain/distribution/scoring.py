"""Contribution scoring from completed issues."""
from __future__ import annotations

from datetime import datetime
from types import MappingProxyType
from typing import Iterable, Mapping

from .entities import WorkItem
from .enums import IssueLevel, IssueState
from .period import as_utc

LEVEL_SCORES: Mapping[IssueLevel, int] = MappingProxyType(
    {
        IssueLevel.NONE: 0,
        IssueLevel.C: 5,
        IssueLevel.B: 20,
        IssueLevel.A: 60,
        IssueLevel.S: 200,
    }
)


class ContributionScorer:
    """Sums issue level scores per assignee."""

    def __init__(self, level_scores: Mapping[IssueLevel, int] = LEVEL_SCORES) -> None:
        self._level_scores = level_scores

    def level_score(self, level: int | None) -> int:
        """Score for a stored level code; missing or unknown levels score 0."""

        if level is None:
            return 0
        try:
            return self._level_scores.get(IssueLevel(level), 0)
        except ValueError:
            return 0

    @staticmethod
    def counts(item: WorkItem, cutoff: datetime | None = None) -> bool:
        """Whether ``item`` is done, assigned and closed (at or before ``cutoff`` when given)."""

        if item.state != IssueState.DONE or not item.assignee or item.closed_at is None:
            return False
        if cutoff is not None and as_utc(item.closed_at) > as_utc(cutoff):
            return False
        return True

    def score(self, work_items: Iterable[WorkItem], cutoff: datetime | None = None) -> dict[str, int]:
        """Return accumulated scores keyed by assignee.

        Assignees whose counted items all score 0 are left out; callers treat
        a missing key as 0.
        """

        scores: dict[str, int] = {}
        for item in work_items:
            if not self.counts(item, cutoff):
                continue
            points = self.level_score(item.level)
            if points:
                scores[item.assignee] = scores.get(item.assignee, 0) + points  # type: ignore[index]
        return scores
