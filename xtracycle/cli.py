"""
Command line entry point for cron.

Runs today's full or incremental xtrabackup and, after a successful full
backup, purges the week that fell out of the retention window.

Exit codes:
  0 - Backup succeeded
  1 - Backup failed, or invalid option values
  3 - xtrabackup binary not found
  4 - Incremental failed because the full backup was not found
  5 - Unrecognized option
  6 - Failed to set the open files limit
  7 - Backup directory already exists

Example crontab entry:
  00 21 * * * root xtracycle -b /path/to/backups -d 4 -k 1 -u 4096 > /dev/null
"""

import argparse
import json
import logging
import os
import sys
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from xtracycle import create_app
from xtracycle.config import CycleConfig
from xtracycle.cycle.errors import ExitCode, CycleError
from xtracycle.cycle.executor import BackupCycleExecutor, preview_cycle
from xtracycle.cycle.xtrabackup import XtrabackupRunner

logger = logging.getLogger(__name__)

EPILOG = """
The script always deletes a full backup and all incremental backups based on
it, and only after a new full backup succeeded. One more week than requested
with -k is kept on disk.

MySQL credentials are not passed on the command line. Put them in ~/.my.cnf
of the user running the script:

  [client]
  user="username"
  password="password"
"""


class CycleArgumentParser(argparse.ArgumentParser):
    """ArgumentParser exiting with INVALID_OPTION on unrecognized input."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(int(ExitCode.INVALID_OPTION), f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = CycleArgumentParser(
        prog='xtracycle',
        description="Run xtrabackup full/incremental backups on a weekly cycle and purge old weeks.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG
    )
    parser.add_argument(
        '-b', '--base-dir',
        help="(required) Base path for backup files. The directory has to exist."
    )
    parser.add_argument(
        '-d', '--full-backup-weekday',
        help="(required) Day of week for the full backup (Monday = 1)"
    )
    parser.add_argument(
        '-k', '--weeks-to-keep',
        help="(required) Number of weeks to keep backups (1-52)"
    )
    parser.add_argument(
        '-u', '--open-files-limit',
        help="Try to set the open files limit (ulimit -n) to this value"
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help="Show today's backup decision and retention plan without running anything"
    )
    parser.add_argument(
        '--date',
        help="Evaluate --dry-run for this date (YYYY-MM-DD) instead of today"
    )
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    preview_date = None
    if args.date:
        if not args.dry_run:
            parser.error("--date can only be used with --dry-run")
        try:
            preview_date = datetime.strptime(args.date, '%Y-%m-%d').date()
        except ValueError:
            parser.error(f"invalid --date value: {args.date}")

    if not (args.base_dir and args.full_backup_weekday and args.weeks_to_keep):
        parser.print_help()
        return int(ExitCode.FAILURE)

    try:
        cycle_config = CycleConfig.from_values(
            args.base_dir,
            args.full_backup_weekday,
            args.weeks_to_keep,
            args.open_files_limit
        )
    except CycleError as e:
        logger.error(str(e))
        return int(e.exit_code)

    # Read-only: no app, no run history, no log files
    if args.dry_run:
        print(json.dumps(preview_cycle(cycle_config, today=preview_date), indent=2))
        return int(ExitCode.SUCCESS)

    try:
        app = create_app(os.environ.get('FLASK_ENV', 'cli'), with_scheduler=False)
    except (OSError, SQLAlchemyError) as e:
        logger.error(f"Cannot set up run history and logging: {e}")
        return int(ExitCode.FAILURE)

    runner = XtrabackupRunner.from_config(app.config)
    try:
        runner.locate()
    except CycleError as e:
        logger.error(str(e))
        return int(e.exit_code)

    with app.app_context():
        run = BackupCycleExecutor(cycle_config, runner=runner).execute()
        exit_code = run.exit_code

    return exit_code


if __name__ == '__main__':
    sys.exit(main())
