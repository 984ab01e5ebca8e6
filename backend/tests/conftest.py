import json
import os
import sys
import pytest

# Ensure the backend root (containing the `rps_helper` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from rps_helper import create_app, db, socketio
from rps_helper.models import RpsSession
from rps_helper.worker import Worker


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WORKER_ID = 'worker-a'
    TURN_TIMEOUT_SEC = 45
    PICKUP_CHANNEL = 'rps_session_pickup'
    TRANSPORT_NAMESPACE = '/ws'
    TRANSPORT_ROOM = 'transport'


class RecordingTransport:
    """Stands in for the chat gateway; keeps every outbound call."""

    def __init__(self):
        self.calls = []

    def send_message(self, chat_id, text, buttons=None):
        self.calls.append(('send', {'chat_id': chat_id, 'text': text, 'buttons': buttons}))

    def edit_message(self, chat_id, message_id, text, buttons=None):
        self.calls.append(('edit', {'chat_id': chat_id, 'message_id': message_id, 'text': text, 'buttons': buttons}))

    def delete_message(self, chat_id, message_id):
        self.calls.append(('delete', {'chat_id': chat_id, 'message_id': message_id}))

    def answer_action(self, action_id, text=None, show_alert=False):
        self.calls.append(('answer', {'action_id': action_id, 'text': text, 'show_alert': show_alert}))

    def of(self, op):
        return [payload for name, payload in self.calls if name == op]

    def texts(self):
        return [payload['text'] for name, payload in self.calls if name in ('send', 'edit')]


class FixedChoice:
    """rng stand-in whose choice() always returns the same value."""

    def __init__(self, value):
        self.value = value

    def choice(self, seq):
        return self.value


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def transport():
    return RecordingTransport()


@pytest.fixture()
def bot_choice():
    return FixedChoice('scissors')


@pytest.fixture()
def worker(flask_app, transport, bot_choice):
    w = Worker(flask_app, transport=transport, rng=bot_choice)
    flask_app.extensions['rps_helper'] = w
    return w


@pytest.fixture()
def seed_session(flask_app):
    """Insert a pending_pickup row the way the matchmaking service would."""

    def _seed(upstream_game_id='g-1', opponent_id=None, opponent_name=None, chat_id='-100', initiator_id='111'):
        state = {'initiator_name': 'Alice', 'message_id': 500}
        if opponent_name:
            state['opponent_name'] = opponent_name
        row = RpsSession(
            upstream_game_id=upstream_game_id,
            chat_id=chat_id,
            initiator_id=initiator_id,
            opponent_id=opponent_id,
            game_state_json=json.dumps(state),
        )
        db.session.add(row)
        db.session.commit()
        return row.session_id

    return _seed


@pytest.fixture()
def load_row(flask_app):
    def _load(session_id):
        db.session.expire_all()
        return db.session.get(RpsSession, session_id)

    return _load


@pytest.fixture()
def client(flask_app, worker):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app, worker):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def act(worker):
    """Route an action through the worker the way the gateway would."""

    def _act(kind, session_id, actor_id, choice=None, **extra):
        data = {'action_kind': kind, 'session_id': session_id, 'actor_id': actor_id}
        if choice is not None:
            data['choice'] = choice
        data.update(extra)
        return worker.handle_action(data)

    return _act
