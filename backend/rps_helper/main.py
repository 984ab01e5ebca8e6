from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)

@main.route('/')
def index():
    worker = current_app.extensions['rps_helper']
    return jsonify({
        'message': 'RPS helper worker is running',
        'worker_id': worker.worker_id,
        'active_sessions': len(worker.sessions),
    })
