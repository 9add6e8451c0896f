from datetime import datetime
from xtracycle import db


class BackupRun(db.Model):
    """One execution of the backup cycle and its retention step"""
    __tablename__ = 'backup_runs'

    id = db.Column(db.Integer, primary_key=True)
    backup_date = db.Column(db.Date, nullable=False)
    backup_kind = db.Column(db.String(20), nullable=False)  # full, incremental
    status = db.Column(db.String(20), nullable=False)  # running, success, failed
    started_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    completed_at = db.Column(db.DateTime)
    target_path = db.Column(db.String(500))
    anchor_path = db.Column(db.String(500))  # Full backup an incremental is based on
    log_path = db.Column(db.String(500))
    exit_code = db.Column(db.Integer)
    error_message = db.Column(db.Text)
    retention_status = db.Column(db.String(30))  # ready, nothing_to_purge, incomplete_chain (null = not run)
    purged_items = db.Column(db.Integer, default=0, nullable=False)
    purge_failures = db.Column(db.Integer, default=0, nullable=False)
    logs = db.Column(db.Text)  # Detailed execution logs

    def to_dict(self):
        return {
            'id': self.id,
            'backup_date': self.backup_date.isoformat(),
            'backup_kind': self.backup_kind,
            'status': self.status,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'target_path': self.target_path,
            'anchor_path': self.anchor_path,
            'log_path': self.log_path,
            'exit_code': self.exit_code,
            'error_message': self.error_message,
            'retention_status': self.retention_status,
            'purged_items': self.purged_items,
            'purge_failures': self.purge_failures,
            'has_logs': bool(self.logs)
        }

    def __repr__(self):
        return f'<BackupRun {self.backup_date} kind={self.backup_kind} status={self.status}>'
