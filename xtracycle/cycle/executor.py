"""
Backup cycle executor - orchestrates one run of the weekly backup cycle.

Workflow:
1. Create BackupRun record (status: running)
2. Apply the open files limit (if configured)
3. Resolve today's backup kind and anchor full backup
4. Check the anchor exists (incrementals) and the target does not
5. Run xtrabackup and check its result
6. After a successful full backup, purge the week that left the retention window
7. Update BackupRun (status: success/failed, exit code)
"""

import logging
import socket
from datetime import date, datetime
from typing import Optional, Dict, Any

from xtracycle import db
from xtracycle.models import BackupRun
from xtracycle.utils.limits import set_open_files_limit
from xtracycle.utils.notify import Notifier
from . import calendar
from .errors import (
    CycleError,
    ExitCode,
    MissingAnchorBackup,
    BackupSetAlreadyExists,
    BackupFailed
)
from .identifiers import BackupKind
from .repository import BackupSetRepository, FilesystemRepository
from .resolver import resolve_cycle, CycleDecision
from .retention import RetentionPlanner, PlanStatus, purge
from .xtrabackup import XtrabackupRunner, BackupResult

logger = logging.getLogger(__name__)


class BackupCycleExecutor:
    """
    Runs today's full or incremental backup and the retention step.
    """

    def __init__(self, cycle_config, repository: Optional[BackupSetRepository] = None,
                 runner: Optional[XtrabackupRunner] = None, notifier: Optional[Notifier] = None):
        """
        Initialize cycle executor.

        Args:
            cycle_config: Validated CycleConfig
            repository: Backup set repository (default: FilesystemRepository on base_dir)
            runner: xtrabackup runner (default: XtrabackupRunner())
            notifier: Notification sink (default: Notifier())
        """
        self.config = cycle_config
        self.repository = repository or FilesystemRepository(cycle_config.base_dir)
        self.runner = runner or XtrabackupRunner()
        self.notifier = notifier or Notifier()
        self.run_record = None
        self.logs = []

    def execute(self, today: Optional[date] = None) -> BackupRun:
        """
        Execute one backup cycle.

        Args:
            today: Date to run the cycle for (default: local today)

        Returns:
            BackupRun record with execution results; exit_code holds the
            process exit code for the run
        """
        if today is None:
            today = calendar.today()

        decision = resolve_cycle(today, self.config.full_backup_weekday)
        location = self.repository.location_of(decision.identifier)

        self.run_record = BackupRun(
            backup_date=today,
            backup_kind=decision.kind.value,
            status='running',
            started_at=datetime.utcnow(),
            target_path=str(location.data_path),
            log_path=str(location.log_path)
        )
        db.session.add(self.run_record)
        db.session.commit()

        started = datetime.now()

        try:
            self._execute_workflow(decision)

            self.run_record.status = 'success'
            self.run_record.exit_code = int(ExitCode.SUCCESS)

        except CycleError as e:
            self.run_record.status = 'failed'
            self.run_record.exit_code = int(e.exit_code)
            self.run_record.error_message = str(e)
            self._log(str(e), level=logging.ERROR)
            self._log(f"xtrabackup {decision.kind.value} backup failed.", level=logging.ERROR)

        except Exception as e:
            self.run_record.status = 'failed'
            self.run_record.exit_code = int(ExitCode.FAILURE)
            self.run_record.error_message = str(e)
            logger.exception("Unexpected error during backup cycle")
            self._log(f"Backup cycle failed: {e}", level=logging.ERROR)

        finally:
            self.run_record.completed_at = datetime.utcnow()
            ended = datetime.now()
            self._log(
                f"Cycle started at {started.strftime('%Y%m%d %H:%M:%S')} "
                f"and ended at {ended.strftime('%Y%m%d %H:%M:%S')}"
            )
            self.run_record.logs = '\n'.join(self.logs)
            db.session.commit()

        return self.run_record

    def _execute_workflow(self, decision: CycleDecision):
        """Execute the main cycle steps."""
        # Step 1: Open files limit
        if self.config.open_files_limit is not None:
            set_open_files_limit(self.config.open_files_limit)
            self._log(f"Open files limit set to {self.config.open_files_limit}")

        # Step 2: Preconditions
        location = self.repository.location_of(decision.identifier)
        anchor_location = None

        if decision.kind is BackupKind.FULL:
            self._log(f"Doing full backup in directory {location.data_path}.")
        else:
            anchor_location = self.repository.location_of(decision.anchor_identifier)
            if not self.repository.exists(decision.anchor_identifier):
                self.notifier.err(f"Missing full backup {anchor_location.data_path} for incremental backup")
                raise MissingAnchorBackup(
                    f"Cannot do incremental backup, because full backup directory "
                    f"({anchor_location.data_path}) doesn't exist."
                )
            self.run_record.anchor_path = str(anchor_location.data_path)
            self._log(
                f"Doing incremental backup in directory {location.data_path} "
                f"as diff to {anchor_location.data_path}."
            )

        self._log(f"Logging to {location.log_path}.")

        if self.repository.occupied(decision.identifier):
            raise BackupSetAlreadyExists(f"Backup directory \"{location.data_path}\" already exists.")

        # Step 3: Backup
        result = self.runner.run(decision.kind, location, anchor_location)
        self._check_result(result)
        self.notifier.info("Innobackup ok")
        self._log(f"xtrabackup {decision.kind.value} backup succeeded.")

        # Step 4: Retention, only after a new full backup
        if decision.kind is BackupKind.FULL:
            try:
                self._enforce_retention(decision)
            except Exception as e:
                logger.exception("Retention step failed")
                self.notifier.warn(f"Retention step failed: {e}")
                self._log("Deletion of backups failed. However, a new full backup was created.",
                          level=logging.WARNING)

    def _check_result(self, result: BackupResult):
        """
        Translate the runner result into the cycle's error taxonomy.

        Raises:
            BackupFailed: If the backup did not succeed
        """
        if result.succeeded:
            return

        self.notifier.err("Innobackup failed")

        if result is BackupResult.CANNOT_CONNECT:
            raise BackupFailed("xtrabackup cannot connect to the database", result)
        if result is BackupResult.MISSING_SUCCESS_MARKER:
            raise BackupFailed("xtrabackup log does not end with \"completed OK!\"", result)
        raise BackupFailed(
            f"xtrabackup exited with status {self.runner.last_exit_status}", result
        )

    def _enforce_retention(self, decision: CycleDecision):
        """Plan and purge the expired week. Problems here never fail the run."""
        plan = RetentionPlanner(self.repository).plan(decision.anchor_date, self.config.weeks_to_keep)
        self.run_record.retention_status = plan.status.value

        if plan.status is PlanStatus.NOTHING_TO_PURGE:
            self.notifier.info(plan.describe())
            self._log(plan.describe())
            return

        if plan.status is PlanStatus.INCOMPLETE_CHAIN:
            self.notifier.warn(plan.describe())
            self._log(plan.describe(), level=logging.WARNING)
            self._log("Deletion of backups failed. However, a new full backup was created.",
                      level=logging.WARNING)
            return

        report = purge(self.repository, plan, notifier=self.notifier)
        self.run_record.purged_items = len(report.deleted)
        self.run_record.purge_failures = len(report.failures)

        if report.succeeded:
            self._log(f"Old backups purged ({len(report.deleted)} paths).")
        else:
            self._log(
                f"Old backups partially purged: {len(report.failures)} of "
                f"{len(report.deleted) + len(report.failures)} paths could not be deleted.",
                level=logging.WARNING
            )

    def _log(self, message: str, level: int = logging.INFO):
        """
        Add a timestamped, host-tagged log line to the run record.

        Args:
            message: Log message
            level: Logging level used for the module logger
        """
        timestamp = datetime.now().strftime('%Y%m%d %H:%M:%S')
        self.logs.append(f"{timestamp} {socket.getfqdn()}: {message}")
        logger.log(level, message)


def preview_cycle(cycle_config, repository: Optional[BackupSetRepository] = None,
                  today: Optional[date] = None) -> Dict[str, Any]:
    """
    Describe what a cycle would do on ``today`` without touching anything.

    Returns:
        Dict with today's decision, anchor state and the retention plan a
        successful full backup would execute
    """
    if today is None:
        today = calendar.today()
    if repository is None:
        repository = FilesystemRepository(cycle_config.base_dir)

    decision = resolve_cycle(today, cycle_config.full_backup_weekday)
    location = repository.location_of(decision.identifier)
    anchor_location = repository.location_of(decision.anchor_identifier)

    plan = RetentionPlanner(repository).plan(decision.anchor_date, cycle_config.weeks_to_keep)

    return {
        'date': today.isoformat(),
        'kind': decision.kind.value,
        'target_path': str(location.data_path),
        'target_exists': repository.occupied(decision.identifier),
        'anchor_date': decision.anchor_date.isoformat(),
        'anchor_path': str(anchor_location.data_path),
        'anchor_exists': repository.exists(decision.anchor_identifier),
        'retention': {
            'status': plan.status.value,
            'applies_today': decision.kind is BackupKind.FULL,
            'target_full_date': plan.target_full_date.isoformat(),
            'missing_date': plan.missing_date.isoformat() if plan.missing_date else None,
            'message': plan.describe(),
            'targets': [
                {
                    'backup': str(target.identifier),
                    'data_path': str(target.data_path),
                    'log_path': str(target.log_path) if target.log_path else None
                }
                for target in plan.targets
            ]
        }
    }


def execute_backup_cycle(cycle_config, app_config=None, today: Optional[date] = None) -> BackupRun:
    """
    Execute a backup cycle with runner settings taken from the app config.

    Args:
        cycle_config: Validated CycleConfig
        app_config: Flask config mapping (XTRABACKUP_* settings)
        today: Date to run the cycle for (default: local today)

    Returns:
        BackupRun record with execution results
    """
    runner = XtrabackupRunner.from_config(app_config or {})
    executor = BackupCycleExecutor(cycle_config, runner=runner)
    return executor.execute(today)
