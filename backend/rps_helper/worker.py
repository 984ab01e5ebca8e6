import threading
from contextlib import contextmanager
from typing import Dict, Optional

from flask import current_app, has_app_context

from rps_helper.actions import decode_action
from rps_helper.errors import ActionDecodeError
from rps_helper.router import ActionRouter, RouteResult
from rps_helper.services.games.dispatcher import ClaimDispatcher
from rps_helper.services.games.engine import GameEngine
from rps_helper.services.games.finalizer import Finalizer
from rps_helper.services.games.scheduler import TimeoutSupervisor, TimerHandle
from rps_helper.services.games.state import ActiveSession
from rps_helper.transport import SocketIOTransport


class Worker:
    """Everything one worker process owns.

    ``sessions`` is this worker's table of claimed sessions; the database
    row stays authoritative. Notifications, actions and timer expiries each
    run under ``lock`` inside an app context, one at a time.
    """

    def __init__(self, app, worker_id: Optional[str] = None, transport=None, rng=None):
        self.app = app
        self.worker_id = worker_id or app.config.get('WORKER_ID')
        self.sessions: Dict[int, ActiveSession] = {}
        self.lock = threading.RLock()
        self.transport = transport or SocketIOTransport(app)
        self.supervisor = TimeoutSupervisor(app, on_expire=self._on_timeout)
        self.finalizer = Finalizer(app, self.sessions, self.supervisor)
        self.engine = GameEngine(app, self.sessions, self.transport, self.supervisor, self.finalizer, rng=rng)
        self.dispatcher = ClaimDispatcher(app, self.worker_id, self.sessions, self.engine)
        self.router = ActionRouter(app, self.sessions, self.engine, self.supervisor, self.transport)

    @contextmanager
    def _event(self):
        with self.lock:
            if has_app_context() and current_app._get_current_object() is self.app:
                yield
            else:
                with self.app.app_context():
                    yield

    def handle_notification(self, payload) -> Optional[ActiveSession]:
        with self._event():
            return self.dispatcher.handle_notification(payload)

    def claim(self, upstream_game_id: str) -> Optional[ActiveSession]:
        with self._event():
            return self.dispatcher.claim(upstream_game_id)

    def handle_action(self, data) -> RouteResult:
        """Decode and route one action. Raises ``ActionDecodeError`` for bad payloads."""
        try:
            event = decode_action(data)
        except ActionDecodeError as exc:
            self.app.logger.warning(f"[action-reject] undecodable payload={data!r} error={exc}")
            action_id = data.get('action_id') if isinstance(data, dict) else None
            self.transport.answer_action(action_id, 'Invalid action.', show_alert=True)
            raise
        with self._event():
            return self.router.route(event)

    def _on_timeout(self, handle: TimerHandle) -> None:
        with self._event():
            active = self.sessions.get(handle.session_id)
            if active is None or active.timer is not handle:
                self.app.logger.info(f"[timer-abort] session={handle.session_id} no longer owns this timer")
                return
            active.timer = None
            self.engine.expire(active, handle.waiting_status)

    def active_sessions(self):
        with self.lock:
            return [s.to_dict() for s in self.sessions.values()]
