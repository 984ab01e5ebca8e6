"""Per-session state machine for offers, direct challenges, PvB and PvP.

Transition methods assume the router already validated the actor and
disarmed the session timer. None of them arm timers themselves; callers
use ``ensure_timer`` once the transition is applied.
"""

from typing import Dict, Optional

from rps_helper.actions import ActionEvent, ActionKind, encode_callback
from rps_helper.errors import InvalidTransition
from rps_helper.models import SessionStatus
from rps_helper.services.games import outcome as rps
from rps_helper.services.games import state as st
from rps_helper.services.games.state import ActiveSession
from rps_helper.transport import escape

PVB_STATUS = {
    rps.WIN_INITIATOR: SessionStatus.COMPLETED_P1_WIN,
    rps.DRAW: SessionStatus.COMPLETED_PUSH,
    rps.WIN_OPPONENT: SessionStatus.COMPLETED_BOT_WIN,
}
PVP_STATUS = {
    rps.WIN_INITIATOR: SessionStatus.COMPLETED_P1_WIN,
    rps.DRAW: SessionStatus.COMPLETED_PUSH,
    rps.WIN_OPPONENT: SessionStatus.COMPLETED_P2_WIN,
}
TIMEOUT_RESULTS = {
    st.AWAITING_OFFER_RESPONSE: (SessionStatus.COMPLETED_TIMEOUT, '⏳ This RPS offer has expired unanswered.'),
    st.AWAITING_DIRECT_RESPONSE: (SessionStatus.COMPLETED_TIMEOUT, '⏳ This RPS challenge has expired unanswered.'),
    st.AWAITING_PLAYER_CHOICE: (SessionStatus.COMPLETED_BOT_WIN, '⏳ Player timed out. The Bot wins by default.'),
    st.AWAITING_BOTH_CHOICES: (
        SessionStatus.COMPLETED_PUSH,
        '⏳ The RPS duel timed out because one or both players did not make a choice. The game is a push.',
    ),
}


def choice_buttons(kind: ActionKind, session_id: int):
    return [[
        {'text': rps.EMOJIS[c], 'callback_data': encode_callback(kind, session_id, c)} for c in rps.CHOICES
    ]]


class GameEngine:
    def __init__(self, app, sessions: Dict[int, ActiveSession], transport, supervisor, finalizer, rng=None):
        self.app = app
        self.sessions = sessions
        self.transport = transport
        self.supervisor = supervisor
        self.finalizer = finalizer
        self.rng = rng

    # ---- entry ----

    def start(self, active: ActiveSession) -> None:
        if active.opponent_id:
            self.open_direct_challenge(active)
        else:
            self.open_offer(active)

    def open_offer(self, active: ActiveSession) -> None:
        state = active.state
        state.advance(st.AWAITING_OFFER_RESPONSE)
        p1 = escape(state.initiator_name)
        sid = active.session_id
        buttons = [
            [{'text': '⚔️ Accept duel', 'callback_data': encode_callback(ActionKind.ACCEPT_PVP_OFFER, sid)}],
            [
                {'text': '\U0001F916 Play the Bot', 'callback_data': encode_callback(ActionKind.ACCEPT_BOT, sid)},
                {'text': '✖️ Cancel', 'callback_data': encode_callback(ActionKind.CANCEL_OFFER, sid)},
            ],
        ]
        self.transport.edit_message(
            active.chat_id, state.message_id,
            f"\U0001FAA8\U0001F4C4✂️ <b>Rock Paper Scissors!</b>\n\n{p1} is looking for a duel. "
            f"Accept to play, or {p1} can take on the Bot instead.",
            buttons,
        )

    def open_direct_challenge(self, active: ActiveSession) -> None:
        state = active.state
        state.advance(st.AWAITING_DIRECT_RESPONSE)
        p1 = escape(state.initiator_name)
        p2 = escape(state.opponent_name or 'Opponent')
        sid = active.session_id
        buttons = [[
            {'text': '✅ Accept', 'callback_data': encode_callback(ActionKind.ACCEPT_DIRECT, sid)},
            {'text': '\U0001F6AB Decline', 'callback_data': encode_callback(ActionKind.DECLINE_DIRECT, sid)},
        ]]
        self.transport.edit_message(
            active.chat_id, state.message_id,
            f"⚔️ <b>RPS Challenge!</b>\n\n{p1} has challenged {p2} to a duel. {p2}, do you accept?",
            buttons,
        )

    def start_pvb(self, active: ActiveSession) -> None:
        state = active.state
        state.advance(st.AWAITING_PLAYER_CHOICE)
        self.transport.edit_message(
            active.chat_id, state.message_id,
            f"\U0001F916 <b>RPS vs. Bot!</b>\n\n{escape(state.initiator_name)}, make your move! Choose your weapon below.",
            choice_buttons(ActionKind.SUBMIT_PVB_CHOICE, active.session_id),
        )

    def start_pvp(self, active: ActiveSession) -> None:
        state = active.state
        state.advance(st.AWAITING_BOTH_CHOICES)
        state.p1_choice = None
        state.p2_choice = None
        p1 = escape(state.initiator_name)
        p2 = escape(state.opponent_name)
        self.transport.edit_message(
            active.chat_id, state.message_id,
            f"⚔️ <b>RPS Duel Started!</b>\n\n{p1} vs. {p2}\n\nI have sent a private message to both players "
            f"to make their secret choice. The results will be revealed here once both have chosen!",
        )
        buttons = choice_buttons(ActionKind.SUBMIT_PVP_CHOICE, active.session_id)
        self.transport.send_message(active.initiator_id, f"Your RPS duel against {p2} is ready! Make your secret choice:", buttons)
        self.transport.send_message(active.opponent_id, f"Your RPS duel against {p1} is ready! Make your secret choice:", buttons)

    def ensure_timer(self, active: ActiveSession, previous=None) -> None:
        """Arm a deadline for the current waiting status, if any.

        Staying in the same status keeps the previous absolute deadline.
        """
        if self.sessions.get(active.session_id) is not active or not active.state.is_waiting:
            return
        deadline = None
        if previous is not None and previous.waiting_status == active.state.status:
            deadline = previous.deadline
        self.supervisor.arm(active, active.state.status, deadline)

    # ---- transitions ----

    def cancel_offer(self, active: ActiveSession, event: ActionEvent) -> Optional[str]:
        active.state.advance(st.CANCELLED)
        self.transport.delete_message(active.chat_id, active.state.message_id)
        self.finalizer.finalize(active.session_id, SessionStatus.COMPLETED_CANCELLED)
        return 'Offer cancelled.'

    def accept_bot(self, active: ActiveSession, event: ActionEvent) -> Optional[str]:
        self.start_pvb(active)
        return None

    def accept_pvp_offer(self, active: ActiveSession, event: ActionEvent) -> Optional[str]:
        active.opponent_id = event.actor_id
        active.state.opponent_name = event.actor_name or f"Player {event.actor_id[-4:]}"
        self.start_pvp(active)
        return 'Duel accepted!'

    def accept_direct(self, active: ActiveSession, event: ActionEvent) -> Optional[str]:
        if event.actor_name and not active.state.opponent_name:
            active.state.opponent_name = event.actor_name
        self.start_pvp(active)
        return 'Duel accepted!'

    def decline_direct(self, active: ActiveSession, event: ActionEvent) -> Optional[str]:
        state = active.state
        state.advance(st.DECLINED)
        name = escape(state.opponent_name or event.actor_name or 'Opponent')
        self.transport.edit_message(active.chat_id, state.message_id, f"\U0001F6AB {name} declined the duel.")
        self.finalizer.finalize(active.session_id, SessionStatus.COMPLETED_CANCELLED)
        return None

    def submit_pvb_choice(self, active: ActiveSession, event: ActionEvent) -> Optional[str]:
        state = active.state
        bot_choice = rps.random_choice(self.rng)
        result = rps.resolve(event.choice, bot_choice, escape(state.initiator_name), 'Bot')
        if result.is_error:
            self.fail_closed(active, f"unresolvable pvb choices {event.choice!r}/{bot_choice!r}")
            return None
        state.p1_choice = result.initiator_choice
        state.bot_choice = result.opponent_choice
        state.outcome = result.to_dict()
        state.advance(st.RESOLVED)
        self.transport.edit_message(
            active.chat_id, state.message_id,
            f"<b>RPS Result!</b>\n\nYou chose: {rps.EMOJIS[state.p1_choice]}\nBot chose: {rps.EMOJIS[state.bot_choice]}"
            f"\n\n{result.description}\n\nThe main bot will now settle the wager.",
        )
        self.finalizer.finalize(active.session_id, PVB_STATUS[result.verdict])
        return None

    def submit_pvp_choice(self, active: ActiveSession, event: ActionEvent) -> Optional[str]:
        state = active.state
        setattr(state, active.choice_slot(event.actor_id), event.choice)
        if event.message_id is not None:
            self.transport.edit_message(
                event.message_chat_id or event.actor_id, event.message_id,
                'Your choice has been locked in secretly.',
            )
        if state.p1_choice and state.p2_choice:
            self._resolve_pvp(active)
        return 'Your choice is locked in!'

    def _resolve_pvp(self, active: ActiveSession) -> None:
        state = active.state
        p1 = escape(state.initiator_name)
        p2 = escape(state.opponent_name)
        result = rps.resolve(state.p1_choice, state.p2_choice, p1, p2)
        if result.is_error:
            self.fail_closed(active, f"unresolvable pvp choices {state.p1_choice!r}/{state.p2_choice!r}")
            return
        state.outcome = result.to_dict()
        state.advance(st.RESOLVED)
        self.transport.edit_message(
            active.chat_id, state.message_id,
            f"<b>RPS Duel Result!</b>\n\n{p1} chose: {rps.EMOJIS[state.p1_choice]}\n{p2} chose: {rps.EMOJIS[state.p2_choice]}"
            f"\n\n{result.description}\n\nThe main bot will settle the wagers.",
        )
        self.finalizer.finalize(active.session_id, PVP_STATUS[result.verdict])

    # ---- supervisor / failure ----

    def expire(self, active: ActiveSession, waiting_status: str) -> bool:
        if active.state.status != waiting_status or waiting_status not in TIMEOUT_RESULTS:
            self.app.logger.info(
                f"[timer-abort] session={active.session_id} expected={waiting_status} actual={active.state.status}"
            )
            return False
        terminal_status, text = TIMEOUT_RESULTS[waiting_status]
        active.state.advance(st.TIMED_OUT)
        self.transport.edit_message(active.chat_id, active.state.message_id, text)
        self.finalizer.finalize(active.session_id, terminal_status)
        return True

    def fail_closed(self, active: ActiveSession, reason: str) -> None:
        self.app.logger.error(f"[internal-error] session={active.session_id} status={active.state.status} reason={reason}")
        try:
            active.state.advance(st.FAILED)
        except InvalidTransition:
            active.state.status = st.FAILED
        self.transport.edit_message(
            active.chat_id, active.state.message_id,
            '⚠️ Something went wrong with this game. It has been cancelled.',
        )
        self.finalizer.finalize(active.session_id, SessionStatus.COMPLETED_CANCELLED)
