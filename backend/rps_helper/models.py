from datetime import datetime, timezone
import json

from rps_helper import db


def utcnow():
    return datetime.now(timezone.utc)


class SessionStatus:
    PENDING_PICKUP = 'pending_pickup'
    IN_PROGRESS = 'in_progress'
    COMPLETED_P1_WIN = 'completed_p1_win'
    COMPLETED_P2_WIN = 'completed_p2_win'
    COMPLETED_BOT_WIN = 'completed_bot_win'
    COMPLETED_PUSH = 'completed_push'
    COMPLETED_CANCELLED = 'completed_cancelled'
    COMPLETED_TIMEOUT = 'completed_timeout'

    TERMINAL = frozenset({
        COMPLETED_P1_WIN, COMPLETED_P2_WIN, COMPLETED_BOT_WIN,
        COMPLETED_PUSH, COMPLETED_CANCELLED, COMPLETED_TIMEOUT,
    })


class RpsSession(db.Model):
    __tablename__ = 'rps_sessions'
    session_id = db.Column(db.Integer, primary_key=True)
    upstream_game_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    chat_id = db.Column(db.String(64), nullable=False)
    initiator_id = db.Column(db.String(64), nullable=False)
    opponent_id = db.Column(db.String(64), nullable=True)
    claimant_id = db.Column(db.String(128), nullable=True)
    status = db.Column(db.String(32), nullable=False, default=SessionStatus.PENDING_PICKUP, index=True)
    game_state_json = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        try:
            game_state = json.loads(self.game_state_json) if self.game_state_json else None
        except ValueError:
            game_state = None
        return {
            'session_id': self.session_id,
            'upstream_game_id': self.upstream_game_id,
            'chat_id': self.chat_id,
            'initiator_id': self.initiator_id,
            'opponent_id': self.opponent_id,
            'claimant_id': self.claimant_id,
            'status': self.status,
            'game_state': game_state,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
