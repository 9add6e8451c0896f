"""
Error kinds and process exit codes for backup cycles.

Every failure that ends a cycle carries the exit code the CLI reports for it.
Retention-side problems are not exceptions: they are reported on the
retention plan and purge report and never change the exit status.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit codes reported by the cron CLI."""
    SUCCESS = 0
    FAILURE = 1
    TOOL_NOT_FOUND = 3
    MISSING_ANCHOR = 4
    INVALID_OPTION = 5
    LIMIT_FAILED = 6
    BACKUP_EXISTS = 7


class CycleError(Exception):
    """Base class for errors that abort a backup cycle."""
    exit_code = ExitCode.FAILURE


class ConfigurationError(CycleError):
    """Raised when schedule or retention settings are malformed or out of range."""
    exit_code = ExitCode.FAILURE


class BackupToolNotFound(CycleError):
    """Raised when the xtrabackup binary cannot be located."""
    exit_code = ExitCode.TOOL_NOT_FOUND


class MissingAnchorBackup(CycleError):
    """Raised when an incremental is due but its anchor full backup is absent."""
    exit_code = ExitCode.MISSING_ANCHOR


class ResourceLimitError(CycleError):
    """Raised when the open files limit cannot be applied."""
    exit_code = ExitCode.LIMIT_FAILED


class BackupSetAlreadyExists(CycleError):
    """Raised when today's backup directory is already present."""
    exit_code = ExitCode.BACKUP_EXISTS


class BackupFailed(CycleError):
    """Raised when xtrabackup did not report a successful backup."""
    exit_code = ExitCode.FAILURE

    def __init__(self, message, result=None):
        super().__init__(message)
        self.result = result
