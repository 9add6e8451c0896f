"""
Status routes - Overview of recent cycles and the scheduler.
"""

from flask import Blueprint, jsonify

from xtracycle.models import BackupRun
from xtracycle.scheduler import get_scheduled_jobs, is_scheduler_running


bp = Blueprint('status', __name__, url_prefix='/api/status')


@bp.route('/overview', methods=['GET'])
def get_overview():
    """
    Get overview statistics.

    Returns:
        JSON with overview stats:
        - total_runs / successful_runs / failed_runs
        - last_run: Most recent run info
        - last_full_backup: Most recent successful full backup date
        - scheduler_status: Scheduler running status
    """
    last_run = BackupRun.query.order_by(BackupRun.started_at.desc()).first()

    last_full = BackupRun.query.filter_by(
        backup_kind='full',
        status='success'
    ).order_by(BackupRun.backup_date.desc()).first()

    return jsonify({
        'total_runs': BackupRun.query.count(),
        'successful_runs': BackupRun.query.filter_by(status='success').count(),
        'failed_runs': BackupRun.query.filter_by(status='failed').count(),
        'last_run': last_run.to_dict() if last_run else None,
        'last_full_backup': last_full.backup_date.isoformat() if last_full else None,
        'scheduler_status': 'running' if is_scheduler_running() else 'stopped'
    })


@bp.route('/scheduled-jobs', methods=['GET'])
def get_scheduled_jobs_info():
    """
    Get information about currently scheduled jobs.

    Returns:
        JSON array of scheduled jobs with next run times
    """
    return jsonify(get_scheduled_jobs())
