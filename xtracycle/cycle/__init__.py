"""
Backup cycle module for xtracycle.

This module holds the weekly backup cycle logic:
- Calendar arithmetic
- Cycle resolution (full vs. incremental, anchor full backup)
- Retention planning and purging
- Backup set repository

The executor (xtracycle.cycle.executor) ties these to xtrabackup and the run
history and is imported directly by its callers.
"""

from .errors import (
    ExitCode,
    CycleError,
    ConfigurationError,
    BackupToolNotFound,
    MissingAnchorBackup,
    ResourceLimitError,
    BackupSetAlreadyExists,
    BackupFailed
)
from .identifiers import BackupKind, BackupIdentifier, BackupSetLocation
from .resolver import resolve_today, anchor_full_date, resolve_cycle
from .retention import RetentionPlanner, RetentionPlan, PlanStatus, purge
from .repository import BackupSetRepository, FilesystemRepository, RepositoryError

__all__ = [
    'ExitCode',
    'CycleError',
    'ConfigurationError',
    'BackupToolNotFound',
    'MissingAnchorBackup',
    'ResourceLimitError',
    'BackupSetAlreadyExists',
    'BackupFailed',
    'BackupKind',
    'BackupIdentifier',
    'BackupSetLocation',
    'resolve_today',
    'anchor_full_date',
    'resolve_cycle',
    'RetentionPlanner',
    'RetentionPlan',
    'PlanStatus',
    'purge',
    'BackupSetRepository',
    'FilesystemRepository',
    'RepositoryError'
]
