from flask import Blueprint, current_app, jsonify, request

from rps_helper import db
from rps_helper.errors import ActionDecodeError
from rps_helper.models import RpsSession

sessions = Blueprint('sessions', __name__)


def _worker():
    return current_app.extensions['rps_helper']


@sessions.route('/active', methods=['GET'])
def list_active_sessions():
    """Sessions claimed by this worker and still in memory."""
    return jsonify(_worker().active_sessions())


@sessions.route('/<int:session_id>', methods=['GET'])
def get_session(session_id):
    row = db.session.get(RpsSession, session_id)
    if row is None:
        return jsonify({'error': 'Session not found'}), 404
    payload = row.to_dict()
    payload['active_here'] = session_id in _worker().sessions
    return jsonify(payload)


@sessions.route('/<int:session_id>/actions', methods=['POST'])
def post_action(session_id):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'payload must be an object'}), 400
    data['session_id'] = session_id
    try:
        result = _worker().handle_action(data)
    except ActionDecodeError as exc:
        return jsonify({'error': str(exc)}), 400
    return jsonify(result.to_dict())
