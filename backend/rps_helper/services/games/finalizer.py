from typing import Dict

from sqlalchemy.exc import SQLAlchemyError

from rps_helper import db
from rps_helper.models import RpsSession, SessionStatus, utcnow
from rps_helper.services.games.state import ActiveSession


class Finalizer:
    """Persist a terminal status and evict the session from memory.

    The write is attempted once. Eviction happens whether or not it
    succeeded; the row is what settlement reads, so a failed write is
    logged as critical.
    """

    def __init__(self, app, sessions: Dict[int, ActiveSession], supervisor):
        self.app = app
        self.sessions = sessions
        self.supervisor = supervisor

    def finalize(self, session_id: int, terminal_status: str, state=None) -> bool:
        active = self.sessions.get(session_id)
        if active is None:
            self.app.logger.info(f"[finalize-skip] session={session_id} not active")
            return False
        if terminal_status not in SessionStatus.TERMINAL:
            self.app.logger.error(f"[finalize] session={session_id} non-terminal status={terminal_status}; cancelling instead")
            terminal_status = SessionStatus.COMPLETED_CANCELLED
        snapshot = state if state is not None else active.state
        self.supervisor.disarm(active)
        self.app.logger.info(f"[finalize] session={session_id} status={terminal_status}")
        try:
            updated = (
                RpsSession.query
                .filter_by(session_id=session_id, status=SessionStatus.IN_PROGRESS)
                .update({
                    'status': terminal_status,
                    'opponent_id': active.opponent_id,
                    'game_state_json': snapshot.to_json(),
                    'updated_at': utcnow(),
                }, synchronize_session=False)
            )
            db.session.commit()
            if updated != 1:
                self.app.logger.critical(
                    f"[finalize-fail] session={session_id} status={terminal_status} rows={updated}"
                )
        except SQLAlchemyError as exc:
            db.session.rollback()
            self.app.logger.critical(f"[finalize-fail] session={session_id} status={terminal_status} error={exc}")
        finally:
            self.sessions.pop(session_id, None)
        return True
