"""
Run history routes - View backup cycle runs and trigger a cycle.
"""

from flask import Blueprint, jsonify, request
from datetime import datetime, timedelta

from xtracycle import db
from xtracycle.models import BackupRun
from xtracycle.scheduler import trigger_cycle_now, is_scheduler_running


bp = Blueprint('runs', __name__, url_prefix='/api/runs')

VALID_STATUSES = ['running', 'success', 'failed']
VALID_KINDS = ['full', 'incremental']


@bp.route('/', methods=['GET'])
def list_runs():
    """
    Get run history with filtering and pagination.

    Query params:
        - status: Filter by status (running/success/failed)
        - kind: Filter by backup kind (full/incremental)
        - days: Only show runs from last N days
        - limit: Max number of records (default: 50, max: 200)
        - offset: Number of records to skip (default: 0)

    Returns:
        JSON with run records and metadata
    """
    status_filter = request.args.get('status')
    kind_filter = request.args.get('kind')
    days_filter = request.args.get('days', type=int)
    limit = request.args.get('limit', 50, type=int)
    offset = request.args.get('offset', 0, type=int)

    # Enforce limits
    if limit > 200:
        limit = 200
    if offset < 0:
        offset = 0

    query = BackupRun.query

    if status_filter:
        if status_filter not in VALID_STATUSES:
            return jsonify({'error': 'Invalid status filter'}), 400
        query = query.filter(BackupRun.status == status_filter)

    if kind_filter:
        if kind_filter not in VALID_KINDS:
            return jsonify({'error': 'Invalid kind filter'}), 400
        query = query.filter(BackupRun.backup_kind == kind_filter)

    if days_filter and days_filter > 0:
        cutoff_date = datetime.utcnow() - timedelta(days=days_filter)
        query = query.filter(BackupRun.started_at >= cutoff_date)

    total_count = query.count()

    runs = query.order_by(
        BackupRun.started_at.desc()
    ).limit(limit).offset(offset).all()

    return jsonify({
        'records': [run.to_dict() for run in runs],
        'total': total_count,
        'limit': limit,
        'offset': offset
    })


@bp.route('/<int:run_id>', methods=['GET'])
def get_run(run_id):
    run = db.session.get(BackupRun, run_id)
    if not run:
        return jsonify({'error': 'Run not found'}), 404

    return jsonify(run.to_dict())


@bp.route('/<int:run_id>/logs', methods=['GET'])
def get_run_logs(run_id):
    """
    Get the detailed execution log of a run.

    Returns:
        JSON with the log lines
    """
    run = db.session.get(BackupRun, run_id)
    if not run:
        return jsonify({'error': 'Run not found'}), 404

    return jsonify({
        'id': run.id,
        'status': run.status,
        'lines': run.logs.split('\n') if run.logs else []
    })


@bp.route('/trigger', methods=['POST'])
def trigger_run():
    """
    Trigger a backup cycle now through the scheduler.

    Returns:
        202 with the scheduler job ID, 503 if the scheduler is not running
    """
    if not is_scheduler_running():
        return jsonify({'error': 'Scheduler is not running'}), 503

    job_id = trigger_cycle_now()
    return jsonify({'message': 'Backup cycle triggered', 'job_id': job_id}), 202
