"""
Status routes - read-only view of the backup destination.
"""

from flask import Blueprint, current_app, jsonify, request

from dailyzip.backup.retention import sort_newest_first
from dailyzip.backup.storage import LocalDestinationStore, StorageError
from dailyzip.models import BackupJobConfig


bp = Blueprint('status', __name__, url_prefix='/api')


def _job_config():
    return BackupJobConfig.from_mapping(current_app.config)


@bp.route('/archives', methods=['GET'])
def list_archives():
    """
    List archives retained at the destination, newest first.

    Returns:
        JSON with archive records, the retention count and destination
    """
    try:
        job_config = _job_config()
    except ValueError as e:
        return jsonify({'error': f'Invalid backup configuration: {e}'}), 500

    store = LocalDestinationStore()
    if not store.exists(job_config.destination_root):
        return jsonify({'error': 'Backup destination is not reachable'}), 503

    try:
        entries = store.list(job_config.destination_root, job_config.archive_pattern)
    except StorageError as e:
        return jsonify({'error': str(e)}), 503

    archives = []
    for entry in sort_newest_first(entries):
        archives.append({
            'name': entry.name,
            'modified_at': entry.modified.isoformat(),
            'size_bytes': entry.size,
            'size_mb': round(entry.size / 1024 / 1024, 2) if entry.size is not None else None
        })

    return jsonify({
        'destination': job_config.destination_root,
        'retention_count': job_config.retention_count,
        'total': len(archives),
        'archives': archives
    })


@bp.route('/history', methods=['GET'])
def list_history():
    """
    Get completion records from the destination backup log.

    Query params:
        - limit: Max number of records (default: 50, max: 200)

    Returns:
        JSON with log lines, newest first
    """
    limit = request.args.get('limit', 50, type=int)

    # Enforce limits
    if limit > 200:
        limit = 200
    if limit < 1:
        limit = 1

    try:
        job_config = _job_config()
    except ValueError as e:
        return jsonify({'error': f'Invalid backup configuration: {e}'}), 500

    store = LocalDestinationStore()
    if not store.exists(job_config.destination_root):
        return jsonify({'error': 'Backup destination is not reachable'}), 503

    try:
        lines = store.read_lines(job_config.log_path)
    except StorageError as e:
        return jsonify({'error': str(e)}), 503

    records = list(reversed(lines))[:limit]

    return jsonify({
        'records': records,
        'total': len(lines),
        'limit': limit
    })
