"""
Backup set repository - where backup sets live and whether they exist.

The retention planner and the cycle executor only talk to the
BackupSetRepository interface; FilesystemRepository is the implementation
backed by the backup base directory.
"""

import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Dict, Any

from .identifiers import (
    BackupIdentifier,
    BackupSetLocation,
    location_for,
    parse_data_dir_name
)


class RepositoryError(Exception):
    """Raised when a backup set path cannot be removed or listed."""
    pass


class BackupSetRepository(ABC):
    """Capabilities the cycle engine needs from backup storage."""

    @abstractmethod
    def location_of(self, identifier: BackupIdentifier) -> BackupSetLocation:
        """Return the data directory and log file of a backup set."""

    @abstractmethod
    def exists(self, identifier: BackupIdentifier) -> bool:
        """Return True if the data directory of a backup set is present."""

    @abstractmethod
    def occupied(self, identifier: BackupIdentifier) -> bool:
        """Return True if anything at all exists at the data path of a backup set."""

    @abstractmethod
    def log_exists(self, identifier: BackupIdentifier) -> bool:
        """Return True if the log file belonging to a backup set is present."""

    @abstractmethod
    def remove_data(self, location: BackupSetLocation):
        """Delete the data directory of a backup set."""

    @abstractmethod
    def remove_log(self, location: BackupSetLocation):
        """Delete the log file of a backup set."""


class FilesystemRepository(BackupSetRepository):
    """
    Repository over a local backup base directory.

    Layout: {base_dir}/{YYYYMMDD}_full, {base_dir}/{YYYYMMDD}_incr and
    {base_dir}/innobackupex_{YYYYMMDD}.log
    """

    def __init__(self, base_dir):
        """
        Initialize filesystem repository.

        Args:
            base_dir: Existing directory holding the backup sets
        """
        self.base_dir = Path(base_dir)

    def location_of(self, identifier: BackupIdentifier) -> BackupSetLocation:
        return location_for(self.base_dir, identifier)

    def exists(self, identifier: BackupIdentifier) -> bool:
        return self.location_of(identifier).data_path.is_dir()

    def occupied(self, identifier: BackupIdentifier) -> bool:
        return os.path.lexists(self.location_of(identifier).data_path)

    def log_exists(self, identifier: BackupIdentifier) -> bool:
        return self.location_of(identifier).log_path.is_file()

    def remove_data(self, location: BackupSetLocation):
        """
        Delete a backup data directory recursively.

        Raises:
            RepositoryError: If the directory cannot be removed
        """
        try:
            shutil.rmtree(location.data_path)
        except PermissionError as e:
            raise RepositoryError(f"Permission denied deleting {location.data_path}: {e}")
        except OSError as e:
            raise RepositoryError(f"Failed to delete {location.data_path}: {e}")

    def remove_log(self, location: BackupSetLocation):
        """
        Delete a backup log file.

        Raises:
            RepositoryError: If the file cannot be removed
        """
        try:
            location.log_path.unlink()
        except PermissionError as e:
            raise RepositoryError(f"Permission denied deleting {location.log_path}: {e}")
        except OSError as e:
            raise RepositoryError(f"Failed to delete {location.log_path}: {e}")

    def list_backup_sets(self) -> List[Dict[str, Any]]:
        """
        List all backup sets found in the base directory, oldest first.

        Returns:
            List of dicts with 'identifier', 'data_path', 'log_path' and
            'has_log' keys

        Raises:
            RepositoryError: If the base directory cannot be read
        """
        try:
            entries = os.listdir(self.base_dir)
        except OSError as e:
            raise RepositoryError(f"Failed to list {self.base_dir}: {e}")

        backup_sets = []
        for entry in entries:
            identifier = parse_data_dir_name(entry)
            if identifier is None or not (self.base_dir / entry).is_dir():
                # Not a backup directory, skip
                continue

            location = self.location_of(identifier)
            backup_sets.append({
                'identifier': identifier,
                'data_path': str(location.data_path),
                'log_path': str(location.log_path),
                'has_log': location.log_path.is_file()
            })

        backup_sets.sort(key=lambda item: (item['identifier'].date, item['identifier'].kind.value))
        return backup_sets
