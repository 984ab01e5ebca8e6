import json
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from rps_helper import db
from rps_helper.errors import InvalidTransition
from rps_helper.models import RpsSession, SessionStatus, utcnow
from rps_helper.services.games.state import ActiveSession


def parse_pickup_payload(payload) -> Optional[str]:
    """Extract the upstream game id from a pickup notification payload."""
    data = json.loads(payload) if isinstance(payload, (str, bytes)) else payload
    if not isinstance(data, dict):
        raise ValueError('pickup payload must be an object')
    upstream_game_id = data.get('upstream_game_id')
    return str(upstream_game_id) if upstream_game_id not in (None, '') else None


class ClaimDispatcher:
    """Claim pending sessions for this worker.

    The claim is one conditional UPDATE; the datastore serializes updates
    to the same row, so at most one worker sees an affected row.
    """

    def __init__(self, app, worker_id: str, sessions: Dict[int, ActiveSession], engine):
        self.app = app
        self.worker_id = worker_id
        self.sessions = sessions
        self.engine = engine

    def claim(self, upstream_game_id: str) -> Optional[ActiveSession]:
        try:
            claimed = (
                RpsSession.query
                .filter_by(upstream_game_id=upstream_game_id, status=SessionStatus.PENDING_PICKUP)
                .update({
                    'status': SessionStatus.IN_PROGRESS,
                    'claimant_id': self.worker_id,
                    'updated_at': utcnow(),
                }, synchronize_session=False)
            )
            if claimed == 0:
                db.session.rollback()
                self.app.logger.info(f"[claim-skip] game={upstream_game_id} worker={self.worker_id}")
                return None
            row = RpsSession.query.filter_by(upstream_game_id=upstream_game_id, claimant_id=self.worker_id).one()
            active = ActiveSession.from_row(row)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            self.app.logger.critical(f"[claim-fail] game={upstream_game_id} worker={self.worker_id} error={exc}")
            return None

        self.sessions[active.session_id] = active
        self.app.logger.info(
            f"[claim] game={upstream_game_id} session={active.session_id} worker={self.worker_id} "
            f"mode={'direct_challenge' if active.opponent_id else 'offer'}"
        )
        try:
            self.engine.start(active)
        except InvalidTransition as exc:
            self.engine.fail_closed(active, f"invalid entry transition {exc}")
            return active
        self.engine.ensure_timer(active)
        return active

    def handle_notification(self, payload) -> Optional[ActiveSession]:
        try:
            upstream_game_id = parse_pickup_payload(payload)
        except ValueError as exc:
            self.app.logger.error(f"[listen] bad pickup payload={payload!r} error={exc}")
            return None
        if not upstream_game_id:
            self.app.logger.warning(f"[listen] pickup payload without upstream_game_id: {payload!r}")
            return None
        self.app.logger.info(f"[listen] pickup notification game={upstream_game_id}")
        return self.claim(upstream_game_id)
