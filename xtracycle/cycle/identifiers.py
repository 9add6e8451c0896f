"""
Backup identifiers and the on-disk naming convention.

A backup identifier is a date plus a kind. Its storage location is derived
from it by a fixed naming convention:

    {base_dir}/{YYYYMMDD}_full
    {base_dir}/{YYYYMMDD}_incr
    {base_dir}/innobackupex_{YYYYMMDD}.log
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Optional


DATE_FORMAT = '%Y%m%d'

_DATA_DIR_PATTERN = re.compile(r'^(?P<date>\d{8})_(?P<suffix>full|incr)$')


class BackupKind(Enum):
    """Type of backup taken on a given day."""
    FULL = 'full'
    INCREMENTAL = 'incremental'

    @property
    def suffix(self) -> str:
        return 'full' if self is BackupKind.FULL else 'incr'


@dataclass(frozen=True)
class BackupIdentifier:
    """One backup set: a calendar date and the kind of backup taken on it."""
    date: date
    kind: BackupKind

    @property
    def stamp(self) -> str:
        return self.date.strftime(DATE_FORMAT)

    def __str__(self):
        return f"{self.stamp}_{self.kind.suffix}"


@dataclass(frozen=True)
class BackupSetLocation:
    """Data directory and log file of one backup set. The log may not exist."""
    data_path: Path
    log_path: Path


def data_dir_name(identifier: BackupIdentifier) -> str:
    return f"{identifier.stamp}_{identifier.kind.suffix}"


def log_file_name(backup_date: date) -> str:
    return f"innobackupex_{backup_date.strftime(DATE_FORMAT)}.log"


def location_for(base_dir, identifier: BackupIdentifier) -> BackupSetLocation:
    """Map an identifier to its location under ``base_dir``."""
    base = Path(base_dir)
    return BackupSetLocation(
        data_path=base / data_dir_name(identifier),
        log_path=base / log_file_name(identifier.date)
    )


def parse_data_dir_name(name: str) -> Optional[BackupIdentifier]:
    """
    Parse a backup directory name back into an identifier.

    Returns:
        BackupIdentifier, or None if the name does not follow the convention
    """
    match = _DATA_DIR_PATTERN.match(name)
    if not match:
        return None

    try:
        backup_date = datetime.strptime(match.group('date'), DATE_FORMAT).date()
    except ValueError:
        return None

    kind = BackupKind.FULL if match.group('suffix') == 'full' else BackupKind.INCREMENTAL
    return BackupIdentifier(date=backup_date, kind=kind)
