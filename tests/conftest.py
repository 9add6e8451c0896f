"""
Shared pytest fixtures for xtracycle tests.

This module provides fixtures for:
- Flask app and test client
- Database setup with in-memory SQLite
- An in-memory backup set repository
- Cycle configuration on a temporary base directory
- A fake xtrabackup runner
"""

from datetime import date, timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from xtracycle import create_app, db as _db
from xtracycle.config import CycleConfig
from xtracycle.cycle.identifiers import BackupIdentifier, BackupKind, location_for
from xtracycle.cycle.repository import BackupSetRepository, RepositoryError
from xtracycle.cycle.xtrabackup import BackupResult
from xtracycle.utils.notify import Notifier


# Thursday
ANCHOR_DATE = date(2024, 1, 18)


class InMemoryRepository(BackupSetRepository):
    """
    Repository fake holding backup sets in memory.

    Paths listed in failing_paths raise RepositoryError when removed.
    """

    def __init__(self, base_dir='/backups', backups=(), logs=(), failing_paths=()):
        self.base_dir = Path(base_dir)
        self.backups = set(backups)
        self.logs = set(logs)
        self.failing_paths = {Path(p) for p in failing_paths}
        self.removed = []

    def location_of(self, identifier):
        return location_for(self.base_dir, identifier)

    def exists(self, identifier):
        return identifier in self.backups

    def occupied(self, identifier):
        return identifier in self.backups

    def log_exists(self, identifier):
        return identifier.date in self.logs

    def remove_data(self, location):
        if location.data_path in self.failing_paths:
            raise RepositoryError(f"Permission denied deleting {location.data_path}")
        self.removed.append(location.data_path)
        self.backups = {
            b for b in self.backups if self.location_of(b).data_path != location.data_path
        }

    def remove_log(self, location):
        if location.log_path in self.failing_paths:
            raise RepositoryError(f"Permission denied deleting {location.log_path}")
        self.removed.append(location.log_path)


def full(d):
    return BackupIdentifier(date=d, kind=BackupKind.FULL)


def incr(d):
    return BackupIdentifier(date=d, kind=BackupKind.INCREMENTAL)


def week_unit(full_date):
    """Full backup on full_date plus the six following incrementals."""
    return [full(full_date)] + [incr(full_date + timedelta(days=i)) for i in range(1, 7)]


@pytest.fixture(scope='function')
def app():
    """
    Create Flask app with test configuration.

    Uses in-memory SQLite database for fast, isolated tests.
    """
    app = create_app('testing', with_scheduler=False)
    yield app


@pytest.fixture(scope='function')
def db(app):
    """
    Create database with all tables.

    Each test gets a fresh database.
    """
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Flask test client for making HTTP requests."""
    return app.test_client()


@pytest.fixture
def base_dir(tmp_path):
    """Empty, writable backup base directory."""
    backups = tmp_path / 'backups'
    backups.mkdir()
    return backups


@pytest.fixture
def cycle_config(base_dir):
    """Full backups on Thursday, one week kept."""
    return CycleConfig.from_values(str(base_dir), 4, 1)


@pytest.fixture
def memory_repository():
    """Factory for InMemoryRepository instances."""
    return InMemoryRepository


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def fake_runner():
    """
    xtrabackup runner stand-in.

    run() creates the target directory and log like xtrabackup would and
    returns runner.result (BackupResult.SUCCEEDED by default).
    """
    runner = MagicMock()
    runner.last_exit_status = 0

    def _run(kind, location, anchor_location=None):
        result = runner.result
        if result.succeeded:
            location.data_path.mkdir()
        location.log_path.write_text("240118 21:07:27 completed OK!\n")
        return result

    runner.result = BackupResult.SUCCEEDED
    runner.run.side_effect = _run
    return runner


@pytest.fixture
def populate(base_dir):
    """Create backup directories and logs on disk for the given identifiers."""
    def _populate(identifiers, with_logs=True):
        for identifier in identifiers:
            location = location_for(base_dir, identifier)
            location.data_path.mkdir()
            (location.data_path / 'xtrabackup_checkpoints').write_text('backup_type = full-backuped\n')
            if with_logs:
                location.log_path.write_text('completed OK!\n')
    return _populate
