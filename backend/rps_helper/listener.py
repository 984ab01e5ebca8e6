"""PostgreSQL LISTEN loop feeding pickup notifications to the worker."""

import sys

import psycopg2
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT

from rps_helper import socketio


def _quote_channel(channel: str) -> str:
    return '"' + channel.replace('"', '""') + '"'


def connect_listener(app):
    conn = psycopg2.connect(app.config['SQLALCHEMY_DATABASE_URI'])
    conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
    with conn.cursor() as cur:
        cur.execute(f"LISTEN {_quote_channel(app.config['PICKUP_CHANNEL'])}")
    return conn


def drain_notifications(app, conn, worker) -> int:
    """Dispatch every queued notification on our channel; returns how many."""
    channel = app.config['PICKUP_CHANNEL']
    conn.poll()
    handled = 0
    while conn.notifies:
        note = conn.notifies.pop(0)
        if note.channel != channel:
            continue
        worker.handle_notification(note.payload)
        handled += 1
    return handled


def _listen_loop(app, conn, worker):
    poll_sec = float(app.config.get('LISTEN_POLL_SEC', 0.5))
    reconnect_sec = float(app.config.get('LISTEN_RECONNECT_SEC', 5))
    while True:
        try:
            drain_notifications(app, conn, worker)
        except psycopg2.Error as exc:
            app.logger.error(f"[listen] connection lost: {exc}; reconnecting in {reconnect_sec}s")
            try:
                conn.close()
            except psycopg2.Error:
                pass
            socketio.sleep(reconnect_sec)
            try:
                conn = connect_listener(app)
                app.logger.info(f"[listen] re-subscribed channel={app.config['PICKUP_CHANNEL']}")
            except psycopg2.Error as reconnect_exc:
                app.logger.error(f"[listen] reconnect failed: {reconnect_exc}")
            continue
        socketio.sleep(poll_sec)


def start_worker(app):
    """Subscribe to pickup notifications and announce readiness.

    Exits the process when the datastore is unreachable at startup so an
    external supervisor can restart it.
    """
    worker = app.extensions['rps_helper']
    try:
        conn = connect_listener(app)
    except psycopg2.Error as exc:
        app.logger.critical(f"FATAL: failed to start pickup listener: {exc}")
        sys.exit(1)
    socketio.start_background_task(_listen_loop, app, conn, worker)
    app.logger.info(
        f"[ready] worker={worker.worker_id} listening channel={app.config['PICKUP_CHANNEL']}"
    )
    socketio.emit(
        'worker_ready',
        {'worker_id': worker.worker_id},
        to=app.config.get('TRANSPORT_ROOM', 'transport'),
        namespace=app.config.get('TRANSPORT_NAMESPACE', '/ws'),
    )
    return conn
