"""
xtrabackup invocation.

Runs the xtrabackup binary for one backup set, captures its combined output
in the set's log file and translates exit status plus log content into a
BackupResult.
"""

import logging
import re
import shutil
import subprocess
from enum import Enum
from typing import List, Optional

from .errors import BackupToolNotFound
from .identifiers import BackupKind, BackupSetLocation

logger = logging.getLogger(__name__)

DEFAULT_OPTIONS = ['--backup', '--ssl-mode=DISABLED', '--no-timestamp']

# xtrabackup exits with this status when it cannot reach the server
CANNOT_CONNECT_STATUS = 9

# e.g. "120828 21:07:27  innobackupex: completed OK!"
SUCCESS_MARKER = re.compile(r'^[0-9]+.*completed OK!')


class BackupResult(Enum):
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'
    CANNOT_CONNECT = 'cannot_connect'
    MISSING_SUCCESS_MARKER = 'missing_success_marker'

    @property
    def succeeded(self) -> bool:
        return self is BackupResult.SUCCEEDED


def log_reports_success(log_text: str) -> bool:
    """Return True if the last non-empty line of the log is the success marker."""
    lines = [line for line in log_text.splitlines() if line.strip()]
    if not lines:
        return False
    return bool(SUCCESS_MARKER.match(lines[-1]))


class XtrabackupRunner:
    """Runs full and incremental backups with the xtrabackup binary."""

    def __init__(self, binary: str = 'xtrabackup', options: Optional[List[str]] = None,
                 use_rsync: Optional[bool] = None):
        """
        Initialize xtrabackup runner.

        Args:
            binary: Name or path of the xtrabackup binary
            options: Base options passed on every run (default: DEFAULT_OPTIONS)
            use_rsync: Pass --rsync; None means "if rsync is on PATH"
        """
        self.binary = binary
        self.options = list(options) if options is not None else list(DEFAULT_OPTIONS)
        self.use_rsync = use_rsync
        self.last_exit_status = None

    @classmethod
    def from_config(cls, app_config) -> 'XtrabackupRunner':
        return cls(
            binary=app_config.get('XTRABACKUP_BINARY', 'xtrabackup'),
            options=app_config.get('XTRABACKUP_OPTIONS') or None
        )

    def locate(self) -> str:
        """
        Resolve the xtrabackup binary.

        Returns:
            Absolute path of the executable

        Raises:
            BackupToolNotFound: If the binary is not an executable on PATH
        """
        path = shutil.which(self.binary)
        if path is None:
            raise BackupToolNotFound(f"{self.binary} binary not found. Cannot continue.")
        return path

    def build_command(self, kind: BackupKind, location: BackupSetLocation,
                      anchor_location: Optional[BackupSetLocation] = None) -> List[str]:
        command = [self.locate()] + self.options

        use_rsync = self.use_rsync
        if use_rsync is None:
            use_rsync = shutil.which('rsync') is not None
        if use_rsync:
            command.append('--rsync')

        command.append(f"--target-dir={location.data_path}")

        if kind is BackupKind.INCREMENTAL:
            if anchor_location is None:
                raise ValueError("Incremental backups need the anchor full backup location")
            command.append(f"--incremental-basedir={anchor_location.data_path}")

        return command

    def run(self, kind: BackupKind, location: BackupSetLocation,
            anchor_location: Optional[BackupSetLocation] = None) -> BackupResult:
        """
        Run one backup and classify its outcome.

        Args:
            kind: FULL or INCREMENTAL
            location: Target backup set (data dir is created by xtrabackup)
            anchor_location: Anchor full backup, required for incrementals

        Returns:
            BackupResult

        Raises:
            BackupToolNotFound: If the binary cannot be located
        """
        command = self.build_command(kind, location, anchor_location)
        logger.info(f"Running command: {subprocess.list2cmdline(command)}")

        with open(location.log_path, 'w') as logfile:
            proc = subprocess.run(
                command,
                stdout=logfile,
                stderr=subprocess.STDOUT,
                close_fds=True
            )

        self.last_exit_status = proc.returncode

        if proc.returncode == CANNOT_CONNECT_STATUS:
            return BackupResult.CANNOT_CONNECT
        if proc.returncode != 0:
            return BackupResult.FAILED

        with open(location.log_path, 'r', errors='replace') as logfile:
            log_text = logfile.read()

        if not log_reports_success(log_text):
            return BackupResult.MISSING_SUCCESS_MARKER

        return BackupResult.SUCCEEDED
