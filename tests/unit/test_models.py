"""
Unit tests for database models (xtracycle/models.py).
"""

from datetime import date, datetime

from xtracycle.models import BackupRun


class TestBackupRunModel:
    """Test BackupRun model."""

    def test_create_run(self, db):
        """Test creating a run record with defaults."""
        before = datetime.utcnow()
        run = BackupRun(
            backup_date=date(2024, 1, 18),
            backup_kind='full',
            status='running'
        )
        db.session.add(run)
        db.session.commit()
        after = datetime.utcnow()

        assert run.id is not None
        assert before <= run.started_at <= after
        assert run.completed_at is None
        assert run.purged_items == 0
        assert run.purge_failures == 0
        assert run.retention_status is None

    def test_to_dict(self, db):
        run = BackupRun(
            backup_date=date(2024, 1, 22),
            backup_kind='incremental',
            status='failed',
            target_path='/backups/20240122_incr',
            anchor_path='/backups/20240118_full',
            log_path='/backups/innobackupex_20240122.log',
            exit_code=4,
            error_message="Full backup /backups/20240118_full doesn't exist"
        )
        db.session.add(run)
        db.session.commit()

        data = run.to_dict()

        assert data['backup_date'] == '2024-01-22'
        assert data['backup_kind'] == 'incremental'
        assert data['anchor_path'] == '/backups/20240118_full'
        assert data['exit_code'] == 4
        assert data['completed_at'] is None
        assert data['has_logs'] is False

    def test_repr(self, db):
        run = BackupRun(backup_date=date(2024, 1, 18), backup_kind='full', status='success')

        assert repr(run) == '<BackupRun 2024-01-18 kind=full status=success>'
