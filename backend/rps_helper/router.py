from dataclasses import dataclass, asdict
from typing import Dict, Optional

from rps_helper.actions import ActionEvent, ActionKind
from rps_helper.errors import (
    DuplicateAction,
    InactiveSession,
    InvalidTransition,
    RejectedAction,
    StaleAction,
    UnauthorizedAction,
)
from rps_helper.services.games import state as st
from rps_helper.services.games.state import ActiveSession

INITIATOR = 'initiator'
NOT_INITIATOR = 'not_initiator'
OPPONENT = 'opponent'
PLAYER = 'player'

# kind -> (required status, who may act)
ACTION_RULES = {
    ActionKind.CANCEL_OFFER: (st.AWAITING_OFFER_RESPONSE, INITIATOR),
    ActionKind.ACCEPT_BOT: (st.AWAITING_OFFER_RESPONSE, INITIATOR),
    ActionKind.ACCEPT_PVP_OFFER: (st.AWAITING_OFFER_RESPONSE, NOT_INITIATOR),
    ActionKind.ACCEPT_DIRECT: (st.AWAITING_DIRECT_RESPONSE, OPPONENT),
    ActionKind.DECLINE_DIRECT: (st.AWAITING_DIRECT_RESPONSE, OPPONENT),
    ActionKind.SUBMIT_PVB_CHOICE: (st.AWAITING_PLAYER_CHOICE, INITIATOR),
    ActionKind.SUBMIT_PVP_CHOICE: (st.AWAITING_BOTH_CHOICES, PLAYER),
}


@dataclass
class RouteResult:
    accepted: bool
    session_id: int
    kind: str
    notice: Optional[str] = None
    show_alert: bool = False
    status: Optional[str] = None

    def to_dict(self):
        return asdict(self)


def _authorized(role: str, active: ActiveSession, actor_id: str) -> bool:
    if role == INITIATOR:
        return actor_id == active.initiator_id
    if role == NOT_INITIATOR:
        return actor_id != active.initiator_id
    if role == OPPONENT:
        return active.opponent_id is not None and actor_id == active.opponent_id
    if role == PLAYER:
        return actor_id in (active.initiator_id, active.opponent_id)
    return False


class ActionRouter:
    """Validate action events and forward them to the engine.

    Order for an accepted event: disarm the timer, apply the transition,
    arm a timer for whatever waiting status the session is now in.
    """

    def __init__(self, app, sessions: Dict[int, ActiveSession], engine, supervisor, transport):
        self.app = app
        self.sessions = sessions
        self.engine = engine
        self.supervisor = supervisor
        self.transport = transport
        self.handlers = {
            ActionKind.CANCEL_OFFER: engine.cancel_offer,
            ActionKind.ACCEPT_BOT: engine.accept_bot,
            ActionKind.ACCEPT_PVP_OFFER: engine.accept_pvp_offer,
            ActionKind.ACCEPT_DIRECT: engine.accept_direct,
            ActionKind.DECLINE_DIRECT: engine.decline_direct,
            ActionKind.SUBMIT_PVB_CHOICE: engine.submit_pvb_choice,
            ActionKind.SUBMIT_PVP_CHOICE: engine.submit_pvp_choice,
        }
        missing = set(ActionKind) - set(self.handlers) | set(ActionKind) - set(ACTION_RULES)
        if missing:
            raise RuntimeError(f"no handler for action kinds: {sorted(k.value for k in missing)}")

    def validate(self, event: ActionEvent) -> ActiveSession:
        active = self.sessions.get(event.session_id)
        if active is None:
            raise InactiveSession()
        required_status, role = ACTION_RULES[event.kind]
        if not _authorized(role, active, event.actor_id):
            raise UnauthorizedAction()
        if active.state.status != required_status:
            raise StaleAction()
        if event.kind == ActionKind.SUBMIT_PVP_CHOICE:
            if getattr(active.state, active.choice_slot(event.actor_id)):
                raise DuplicateAction()
        return active

    def route(self, event: ActionEvent) -> RouteResult:
        try:
            active = self.validate(event)
        except RejectedAction as rejection:
            self.app.logger.info(
                f"[action-reject] session={event.session_id} kind={event.kind.value} actor={event.actor_id} "
                f"reason={type(rejection).__name__}"
            )
            self.transport.answer_action(event.action_id, rejection.notice, show_alert=rejection.show_alert)
            return RouteResult(False, event.session_id, event.kind.value, rejection.notice, rejection.show_alert)

        previous = active.timer
        self.supervisor.disarm(active)
        self.app.logger.info(
            f"[action] session={event.session_id} kind={event.kind.value} actor={event.actor_id} status={active.state.status}"
        )
        try:
            ack = self.handlers[event.kind](active, event)
        except InvalidTransition as exc:
            self.engine.fail_closed(active, f"invalid transition {exc}")
            ack = None
        self.engine.ensure_timer(active, previous)
        self.transport.answer_action(event.action_id, ack)
        return RouteResult(True, event.session_id, event.kind.value, ack, False, active.state.status)
