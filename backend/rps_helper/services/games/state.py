"""In-memory game state for claimed sessions.

``GameState`` is the serialized blob stored in ``rps_sessions.game_state_json``.
Its ``status`` only ever moves forward along ``TRANSITIONS``.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from rps_helper.errors import InvalidTransition

OFFER = 'offer'
DIRECT_CHALLENGE = 'direct_challenge'
PVB = 'pvb'
PVP = 'pvp'

AWAITING_OFFER_RESPONSE = 'awaiting_offer_response'
AWAITING_DIRECT_RESPONSE = 'awaiting_direct_response'
AWAITING_PLAYER_CHOICE = 'awaiting_player_choice'
AWAITING_BOTH_CHOICES = 'awaiting_both_choices'

CANCELLED = 'cancelled'
DECLINED = 'declined'
RESOLVED = 'resolved'
TIMED_OUT = 'timed_out'
FAILED = 'failed'

WAITING_STATUSES = {
    AWAITING_OFFER_RESPONSE: OFFER,
    AWAITING_DIRECT_RESPONSE: DIRECT_CHALLENGE,
    AWAITING_PLAYER_CHOICE: PVB,
    AWAITING_BOTH_CHOICES: PVP,
}

TRANSITIONS = {
    None: {AWAITING_OFFER_RESPONSE, AWAITING_DIRECT_RESPONSE},
    AWAITING_OFFER_RESPONSE: {CANCELLED, AWAITING_PLAYER_CHOICE, AWAITING_BOTH_CHOICES, TIMED_OUT, FAILED},
    AWAITING_DIRECT_RESPONSE: {DECLINED, AWAITING_BOTH_CHOICES, TIMED_OUT, FAILED},
    AWAITING_PLAYER_CHOICE: {RESOLVED, TIMED_OUT, FAILED},
    AWAITING_BOTH_CHOICES: {RESOLVED, TIMED_OUT, FAILED},
}

_KNOWN_KEYS = (
    'mode', 'status', 'initiator_name', 'opponent_name', 'message_id',
    'p1_choice', 'p2_choice', 'bot_choice', 'outcome',
)


def display_name(actor: Optional[Dict[str, Any]]) -> str:
    if not actor:
        return 'Mystery Player'
    if actor.get('username'):
        return f"@{actor['username']}"
    if actor.get('first_name'):
        return actor['first_name']
    return f"Player {str(actor.get('id', ''))[-4:]}"


@dataclass
class GameState:
    mode: Optional[str] = None
    status: Optional[str] = None
    initiator_name: str = 'Mystery Player'
    opponent_name: Optional[str] = None
    message_id: Optional[Any] = None
    p1_choice: Optional[str] = None
    p2_choice: Optional[str] = None
    bot_choice: Optional[str] = None
    outcome: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_waiting(self) -> bool:
        return self.status in WAITING_STATUSES

    def advance(self, new_status: str, mode: Optional[str] = None) -> None:
        allowed = TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidTransition(f"{self.status} -> {new_status}")
        self.status = new_status
        if new_status in WAITING_STATUSES:
            self.mode = WAITING_STATUSES[new_status]
        elif mode:
            self.mode = mode

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({
            'mode': self.mode,
            'status': self.status,
            'initiator_name': self.initiator_name,
            'opponent_name': self.opponent_name,
            'message_id': self.message_id,
            'p1_choice': self.p1_choice,
            'p2_choice': self.p2_choice,
            'bot_choice': self.bot_choice,
            'outcome': self.outcome,
        })
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, raw) -> 'GameState':
        """Build from the upstream blob; claimed sessions always restart their mode."""
        try:
            data = json.loads(raw) if isinstance(raw, str) else dict(raw or {})
        except (TypeError, ValueError):
            data = {}
        if not isinstance(data, dict):
            data = {}
        extra = {k: v for k, v in data.items() if k not in _KNOWN_KEYS}
        return cls(
            initiator_name=data.get('initiator_name') or 'Mystery Player',
            opponent_name=data.get('opponent_name'),
            message_id=data.get('message_id'),
            extra=extra,
        )


@dataclass
class ActiveSession:
    """A claimed session mirrored in this worker's memory."""

    session_id: int
    upstream_game_id: str
    chat_id: str
    initiator_id: str
    opponent_id: Optional[str]
    state: GameState
    timer: Any = None

    @classmethod
    def from_row(cls, row) -> 'ActiveSession':
        return cls(
            session_id=row.session_id,
            upstream_game_id=row.upstream_game_id,
            chat_id=str(row.chat_id),
            initiator_id=str(row.initiator_id),
            opponent_id=str(row.opponent_id) if row.opponent_id else None,
            state=GameState.from_json(row.game_state_json),
        )

    def choice_slot(self, actor_id: str) -> Optional[str]:
        if actor_id == self.initiator_id:
            return 'p1_choice'
        if self.opponent_id and actor_id == self.opponent_id:
            return 'p2_choice'
        return None

    def to_dict(self):
        return {
            'session_id': self.session_id,
            'upstream_game_id': self.upstream_game_id,
            'chat_id': self.chat_id,
            'initiator_id': self.initiator_id,
            'opponent_id': self.opponent_id,
            'mode': self.state.mode,
            'status': self.state.status,
            'deadline': self.timer.deadline if self.timer else None,
        }
