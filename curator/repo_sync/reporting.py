"""Logging presentation of synchronization progress and results."""

import logging
from typing import Optional

from .orchestrator import SyncEvent, SyncEventKind
from .utils import SyncOutcome, SyncReport, SyncStatus

_STATUS_LEVELS = {
    SyncStatus.FAILED: logging.ERROR,
    SyncStatus.SKIPPED: logging.WARNING,
    SyncStatus.NOT_A_REPOSITORY: logging.WARNING,
}


def describe_outcome(outcome: SyncOutcome) -> str:
    """One-line description of a repository outcome."""
    description = f"{outcome.name}: {outcome.status.value}"
    if outcome.message:
        description = f"{description} ({outcome.message})"
    if outcome.error_code:
        description = f"{description} [{outcome.error_code}]"
    if outcome.local_branches:
        description = f"{description} [{' '.join(outcome.local_branches)}]"
    return description


class LoggingReporter:
    """
    Listener that logs each repository as it is processed.

    Pass an instance as ``listener`` to ``sync_repositories``; call
    ``log_report`` with the returned report for the closing summary.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('curator.repo_sync.reporting')

    def __call__(self, event: SyncEvent) -> None:
        if event.kind == SyncEventKind.STARTED:
            self.logger.info(f"[{event.index + 1}/{event.total}] Processing {event.name}")
            return

        if event.outcome is not None:
            self.log_outcome(event.outcome)

    def log_outcome(self, outcome: SyncOutcome) -> None:
        self.logger.log(_STATUS_LEVELS.get(outcome.status, logging.INFO), describe_outcome(outcome))

        for submodule in outcome.submodules:
            level = _STATUS_LEVELS.get(submodule.status, logging.INFO)
            self.logger.log(level, f"  {outcome.name}/{submodule.name}: {submodule.status.value} ({submodule.message})")

        for error in outcome.errors:
            self.logger.warning(f"  {outcome.name}: {error}")

    def log_report(self, report: SyncReport) -> None:
        done = report.count(SyncStatus.CLONED) if report.mode == "clone" else (
            report.count(SyncStatus.PULLED) + report.count(SyncStatus.ALREADY_UP_TO_DATE)
        )
        summary = (
            f"{report.mode.capitalize()} from {report.source}: {done}/{len(report.outcomes)} done, "
            f"{len(report.failed)} failed"
        )
        if report.cancelled:
            summary = f"{summary}, cancelled"
        self.logger.info(summary)
