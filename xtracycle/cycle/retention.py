"""
Retention planning and purging of old backup weeks.

Backups are deleted one week unit at a time: the full backup that lies
weeks_to_keep + 1 weeks before the current anchor, together with the six
incrementals of the following days. Planning is all-or-nothing; purging is
best-effort per path.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from . import calendar
from .identifiers import BackupIdentifier, BackupKind
from .repository import BackupSetRepository, RepositoryError

logger = logging.getLogger(__name__)

# A week unit is one full backup followed by this many incrementals
INCREMENTALS_PER_WEEK = 6


class PlanStatus(Enum):
    READY = 'ready'
    NOTHING_TO_PURGE = 'nothing_to_purge'
    INCOMPLETE_CHAIN = 'incomplete_chain'


@dataclass(frozen=True)
class PurgeTarget:
    """A backup set selected for deletion. log_path is None when no log exists."""
    identifier: BackupIdentifier
    data_path: Path
    log_path: Optional[Path]


@dataclass(frozen=True)
class RetentionPlan:
    status: PlanStatus
    target_full_date: date
    targets: Tuple[PurgeTarget, ...] = ()
    missing_date: Optional[date] = None

    @property
    def identifiers(self) -> List[BackupIdentifier]:
        return [target.identifier for target in self.targets]

    @property
    def is_ready(self) -> bool:
        return self.status is PlanStatus.READY

    def describe(self) -> str:
        stamp = self.target_full_date.strftime('%Y%m%d')
        if self.status is PlanStatus.NOTHING_TO_PURGE:
            return f"No full backup found for {stamp}. Nothing to purge yet."
        if self.status is PlanStatus.INCOMPLETE_CHAIN:
            return (
                f"Missing incremental backup at date {self.missing_date.strftime('%Y%m%d')}. "
                f"Skipping deletion of the week starting {stamp}."
            )
        return f"{len(self.targets)} backup sets of the week starting {stamp} are due for deletion."


@dataclass(frozen=True)
class PurgeItemFailure:
    path: Path
    reason: str


@dataclass
class PurgeReport:
    deleted: List[Path] = field(default_factory=list)
    failures: List[PurgeItemFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failures


class RetentionPlanner:
    """
    Works out which backup week has fallen out of the retention window.

    The planner only reads the repository; deleting is left to purge().
    """

    def __init__(self, repository: BackupSetRepository):
        self.repository = repository

    def plan(self, anchor_full_date: date, weeks_to_keep: int) -> RetentionPlan:
        """
        Build the deletion plan for the current anchor.

        One extra week is kept on top of weeks_to_keep, so at least
        weeks_to_keep complete weeks remain on disk after a purge.

        Args:
            anchor_full_date: Date of the current cycle's full backup
            weeks_to_keep: Retention window in weeks (>= 1)

        Returns:
            RetentionPlan; its targets are empty unless status is READY
        """
        assert weeks_to_keep >= 1, f"weeks_to_keep must be positive, got {weeks_to_keep}"

        target_full_date = calendar.weeks_ago_from_date(anchor_full_date, weeks_to_keep + 1)
        full_identifier = BackupIdentifier(date=target_full_date, kind=BackupKind.FULL)

        if not self.repository.exists(full_identifier):
            return RetentionPlan(status=PlanStatus.NOTHING_TO_PURGE, target_full_date=target_full_date)

        targets = [self._target(full_identifier)]

        for offset in range(1, INCREMENTALS_PER_WEEK + 1):
            incremental = BackupIdentifier(
                date=calendar.days_from_date(target_full_date, offset),
                kind=BackupKind.INCREMENTAL
            )
            if not self.repository.exists(incremental):
                return RetentionPlan(
                    status=PlanStatus.INCOMPLETE_CHAIN,
                    target_full_date=target_full_date,
                    missing_date=incremental.date
                )
            targets.append(self._target(incremental))

        return RetentionPlan(
            status=PlanStatus.READY,
            target_full_date=target_full_date,
            targets=tuple(targets)
        )

    def _target(self, identifier: BackupIdentifier) -> PurgeTarget:
        location = self.repository.location_of(identifier)
        log_path = location.log_path if self.repository.log_exists(identifier) else None
        return PurgeTarget(identifier=identifier, data_path=location.data_path, log_path=log_path)


def purge(repository: BackupSetRepository, plan: RetentionPlan, notifier=None) -> PurgeReport:
    """
    Delete the backup sets of a READY plan.

    All data directories are removed first, then the log files. A failure on
    one path is recorded and reported, and the remaining paths are still
    deleted.

    Args:
        repository: Repository holding the backup sets
        plan: Plan returned by RetentionPlanner.plan()
        notifier: Optional Notifier receiving per-item failure warnings

    Returns:
        PurgeReport listing deleted paths and failures
    """
    report = PurgeReport()

    if not plan.is_ready:
        return report

    steps = []
    for target in plan.targets:
        location = repository.location_of(target.identifier)
        steps.append((target.data_path, repository.remove_data, location))
    for target in plan.targets:
        if target.log_path is not None:
            location = repository.location_of(target.identifier)
            steps.append((target.log_path, repository.remove_log, location))

    for path, remove, location in steps:
        try:
            remove(location)
            report.deleted.append(path)
            logger.info(f"Deleted {path}")
        except RepositoryError as e:
            report.failures.append(PurgeItemFailure(path=path, reason=str(e)))
            logger.warning(f"Failed to delete {path}: {e}")
            if notifier is not None:
                notifier.warn(f"Failed to delete {path}")

    return report
