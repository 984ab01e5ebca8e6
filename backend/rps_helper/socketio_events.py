from flask import current_app
from flask_socketio import emit, join_room, leave_room

from rps_helper import socketio
from rps_helper.errors import ActionDecodeError


def _worker():
    return current_app.extensions['rps_helper']


def handle_connect():
    emit('connected', {'message': 'Connected to /ws', 'worker_id': _worker().worker_id})


def handle_join_transport(data=None):
    room = current_app.config.get('TRANSPORT_ROOM', 'transport')
    join_room(room)
    emit('joined', {'room': room})


def handle_leave_transport(data=None):
    room = current_app.config.get('TRANSPORT_ROOM', 'transport')
    leave_room(room)
    emit('left', {'room': room})


def handle_action(data):
    try:
        result = _worker().handle_action(data or {})
    except ActionDecodeError as exc:
        payload = {'accepted': False, 'error': str(exc)}
        emit('action_result', payload)
        return payload
    payload = result.to_dict()
    emit('action_result', payload)
    return payload


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False, namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers.

    Always register on the transport namespace. When testing is True, also
    mirror handlers on the default namespace '/' for the test harness.
    """
    namespaces = [namespace]
    if testing and namespace != '/':
        namespaces.append('/')
    for ns in namespaces:
        socketio.on_event('connect', handle_connect, namespace=ns)
        socketio.on_event('join_transport', handle_join_transport, namespace=ns)
        socketio.on_event('leave_transport', handle_leave_transport, namespace=ns)
        socketio.on_event('action', handle_action, namespace=ns)
        socketio.on_event('ping', handle_ping, namespace=ns)
