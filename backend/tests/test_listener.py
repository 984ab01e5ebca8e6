import json
from collections import namedtuple

import psycopg2
import pytest

from rps_helper import listener

Notify = namedtuple('Notify', 'pid channel payload')


class FakeListenConnection:
    def __init__(self, notes):
        self.notifies = []
        self._pending = list(notes)
        self.polls = 0

    def poll(self):
        self.polls += 1
        self.notifies.extend(self._pending)
        self._pending = []


def test_drain_claims_each_pickup_on_our_channel(flask_app, worker, seed_session):
    a = seed_session('g-n1')
    b = seed_session('g-n2')
    conn = FakeListenConnection([
        Notify(1, 'rps_session_pickup', json.dumps({'upstream_game_id': 'g-n1'})),
        Notify(1, 'some_other_channel', json.dumps({'upstream_game_id': 'g-n2'})),
        Notify(1, 'rps_session_pickup', '{broken'),
    ])
    handled = listener.drain_notifications(flask_app, conn, worker)
    assert handled == 2
    assert conn.notifies == []
    assert a in worker.sessions
    assert b not in worker.sessions


def test_channel_name_is_quoted():
    assert listener._quote_channel('rps_session_pickup') == '"rps_session_pickup"'
    assert listener._quote_channel('we"ird') == '"we""ird"'


def test_startup_exits_when_datastore_unreachable(flask_app, worker, monkeypatch):
    def refuse(*args, **kwargs):
        raise psycopg2.OperationalError('could not connect to server')

    monkeypatch.setattr(listener.psycopg2, 'connect', refuse)
    with pytest.raises(SystemExit) as exc:
        listener.start_worker(flask_app)
    assert exc.value.code == 1
