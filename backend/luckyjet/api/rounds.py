from flask import Blueprint, current_app, jsonify, request

from luckyjet.services.rounds import PersistenceFailure, get_scheduler


rounds = Blueprint('rounds', __name__)

MAX_HISTORY = 200


@rounds.errorhandler(PersistenceFailure)
def handle_persistence_failure(exc):
    current_app.logger.error(f"[api] {exc}")
    return jsonify({'error': 'Round storage unavailable'}), 503


@rounds.route('/current', methods=['GET'])
def current_round():
    """Same payload a Socket.IO observer receives as initData."""
    return jsonify(get_scheduler().hub.snapshot())


@rounds.route('/history', methods=['GET'])
def round_history():
    default = int(current_app.config.get('HISTORY_LIMIT', 20))
    limit = request.args.get('limit', default)
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        return jsonify({'error': 'limit must be an integer'}), 400
    limit = max(1, min(MAX_HISTORY, limit))
    entries = get_scheduler().store.recent_history(limit)
    return jsonify([entry.to_dict() for entry in entries])
