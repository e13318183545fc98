#!/usr/bin/env python3
"""Recompute copany revenue distributions for one copany, all copanies, or today's scheduled run."""
from __future__ import annotations

import argparse
import sys
from datetime import datetime, timezone
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from rich.table import Table

from copany.core.config import get_settings
from copany.core.logger import get_logger, init_logging, log_context, progress_manager, shutdown_logging, timeit
from copany.db.session import session_scope
from copany.domain.distribution.period import as_utc
from copany.repositories import DistributionRepository
from copany.services import CopanyNotFoundError, CopanyOutcome, DistributionService

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--copany-id", type=int, help="Recompute the full history of one copany")
    target.add_argument("--all", action="store_true", help="Recompute the full history of every copany")
    target.add_argument(
        "--scheduled",
        action="store_true",
        help="Recompute the delayed month of copanies whose distribution day is today (UTC)",
    )
    parser.add_argument(
        "--now",
        type=str,
        default=None,
        help="Override the current time for --scheduled (ISO 8601, UTC when no offset is given)",
    )
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (DEBUG, INFO, ...)")
    return parser.parse_args(argv)


def _parse_now(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def render_summary(outcomes: list[CopanyOutcome]) -> Table:
    table = Table(title="Distribution recompute")
    table.add_column("Copany")
    table.add_column("Month")
    table.add_column("Result")
    table.add_column("Inserted", justify="right")
    table.add_column("Net income", justify="right")

    for outcome in outcomes:
        label = f"{outcome.copany_id} {outcome.name}"
        if outcome.error:
            table.add_row(label, "-", f"failed: {outcome.error}", "0", "-")
        for period in outcome.periods:
            if not period.success:
                result = f"failed: {period.error}"
            elif period.skipped:
                result = f"skipped ({period.reason})"
            else:
                result = "ok"
            net = f"{period.net_income} {period.currency or ''}".strip()
            table.add_row(label, period.period_key, result, str(period.inserted), net)
    return table


def run(args: argparse.Namespace) -> list[CopanyOutcome]:
    settings = get_settings()
    service = DistributionService(settings.distribution)
    with session_scope() as session:
        if args.scheduled:
            log_context.bind(mode="scheduled")
            return service.run_scheduled(session, _parse_now(args.now))
        if args.all:
            log_context.bind(mode="all")
            total = len(DistributionRepository(session).list_copanies())
            with progress_manager.task("Recomputing copanies", total=total) as task:
                return service.recalculate_all(session, on_copany_done=lambda _outcome: task.advance())

        log_context.bind(mode="single")
        return [service.recalculate_history(session, args.copany_id)]


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.log_level:
        init_logging(app_name="recalculate-distributions", level=args.log_level)
    else:
        init_logging(app_name="recalculate-distributions")
    log_context.bind(job="recalculate_distributions")

    if args.now and not args.scheduled:
        logger.warning("--now only applies to --scheduled; ignoring it")

    with timeit("distribution recompute", logger=logger, unit="copanies") as timer:
        try:
            outcomes = run(args)
        except CopanyNotFoundError as exc:
            logger.error("%s", exc)
            return 2
        timer.set_total(len(outcomes))

    progress_manager.console.print(render_summary(outcomes))

    failed = sum(1 for outcome in outcomes if not outcome.success)
    if failed:
        logger.error("%s copanies had failed periods", failed)
        return 1
    logger.info(
        "Done: %s copanies, %s distributions inserted",
        len(outcomes),
        sum(outcome.total_inserted for outcome in outcomes),
    )
    return 0


if __name__ == "__main__":
    try:
        exit_code = main()
    finally:
        shutdown_logging()
    sys.exit(exit_code)
