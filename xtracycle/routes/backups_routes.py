"""
Backup set routes - On-disk backup sets and the upcoming cycle plan.
"""

from datetime import datetime

from flask import Blueprint, jsonify, request, current_app

from xtracycle.config import CycleConfig
from xtracycle.cycle.errors import ConfigurationError
from xtracycle.cycle.executor import preview_cycle
from xtracycle.cycle.repository import FilesystemRepository, RepositoryError


bp = Blueprint('backups', __name__, url_prefix='/api/backups')


def _cycle_config():
    return CycleConfig.from_app_config(current_app.config)


@bp.route('/', methods=['GET'])
def list_backup_sets():
    """
    List backup sets present in the base directory.

    Returns:
        JSON array of backup sets, oldest first
    """
    try:
        cycle_config = _cycle_config()
    except ConfigurationError as e:
        return jsonify({'error': str(e)}), 503

    try:
        backup_sets = FilesystemRepository(cycle_config.base_dir).list_backup_sets()
    except RepositoryError as e:
        return jsonify({'error': str(e)}), 500

    return jsonify([
        {
            'name': str(item['identifier']),
            'date': item['identifier'].date.isoformat(),
            'kind': item['identifier'].kind.value,
            'data_path': item['data_path'],
            'log_path': item['log_path'] if item['has_log'] else None
        }
        for item in backup_sets
    ])


@bp.route('/plan', methods=['GET'])
def get_plan():
    """
    Describe what the cycle would do on a date, without side effects.

    Query params:
        - date: YYYY-MM-DD (default: today)

    Returns:
        JSON with the backup decision and retention plan
    """
    try:
        cycle_config = _cycle_config()
    except ConfigurationError as e:
        return jsonify({'error': str(e)}), 503

    day = None
    date_param = request.args.get('date')
    if date_param:
        try:
            day = datetime.strptime(date_param, '%Y-%m-%d').date()
        except ValueError:
            return jsonify({'error': 'Invalid date, expected YYYY-MM-DD'}), 400

    return jsonify(preview_cycle(cycle_config, today=day))
