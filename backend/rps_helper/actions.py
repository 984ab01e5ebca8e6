"""Inbound action events and the callback-data codec used on chat buttons."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from rps_helper.errors import ActionDecodeError
from rps_helper.services.games.outcome import CHOICES
from rps_helper.services.games.state import display_name


class ActionKind(str, Enum):
    CANCEL_OFFER = 'cancel_offer'
    ACCEPT_BOT = 'accept_bot'
    ACCEPT_PVP_OFFER = 'accept_pvp_offer'
    ACCEPT_DIRECT = 'accept_direct'
    DECLINE_DIRECT = 'decline_direct'
    SUBMIT_PVB_CHOICE = 'submit_pvb_choice'
    SUBMIT_PVP_CHOICE = 'submit_pvp_choice'


CHOICE_KINDS = frozenset({ActionKind.SUBMIT_PVB_CHOICE, ActionKind.SUBMIT_PVP_CHOICE})


@dataclass(frozen=True)
class ActionEvent:
    kind: ActionKind
    session_id: int
    actor_id: str
    choice: Optional[str] = None
    actor_name: Optional[str] = None
    action_id: Optional[str] = None
    # chat/message of the button that was pressed, when the gateway knows it
    message_chat_id: Optional[str] = None
    message_id: Optional[Any] = None


def encode_callback(kind: ActionKind, session_id: int, choice: Optional[str] = None) -> str:
    parts = [ActionKind(kind).value, str(session_id)]
    if choice:
        parts.append(choice)
    return ':'.join(parts)


def _parse_kind(raw) -> ActionKind:
    try:
        return ActionKind(raw)
    except ValueError:
        raise ActionDecodeError(f"unknown action kind: {raw!r}")


def _parse_session_id(raw) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ActionDecodeError(f"bad session id: {raw!r}")


def decode_action(data: Dict[str, Any]) -> ActionEvent:
    """Decode a gateway payload into an ``ActionEvent``.

    Accepts explicit ``action_kind``/``session_id``/``choice`` fields or a
    ``callback_data`` string. Anything unrecognized raises
    ``ActionDecodeError``.
    """
    if not isinstance(data, dict):
        raise ActionDecodeError('payload must be an object')

    kind_raw = data.get('action_kind')
    session_raw = data.get('session_id')
    choice = data.get('choice')
    callback_data = data.get('callback_data')
    if kind_raw is None and callback_data:
        parts = str(callback_data).split(':')
        if len(parts) not in (2, 3):
            raise ActionDecodeError(f"malformed callback data: {callback_data!r}")
        kind_raw, session_raw = parts[0], parts[1]
        choice = parts[2] if len(parts) == 3 else None
    if kind_raw is None:
        raise ActionDecodeError('missing action kind')

    kind = _parse_kind(kind_raw)
    session_id = _parse_session_id(session_raw)

    if kind in CHOICE_KINDS:
        choice = str(choice).lower() if choice is not None else None
        if choice not in CHOICES:
            raise ActionDecodeError(f"invalid choice: {choice!r}")
    else:
        choice = None

    actor = data.get('actor') or {}
    if not isinstance(actor, dict):
        raise ActionDecodeError(f"actor must be an object: {actor!r}")
    actor_id = data.get('actor_id') or actor.get('id')
    if actor_id is None or str(actor_id) == '':
        raise ActionDecodeError('missing actor id')
    actor_name = data.get('actor_name') or (display_name(actor) if actor else None)

    message = data.get('message') or {}
    if not isinstance(message, dict):
        raise ActionDecodeError(f"message must be an object: {message!r}")
    return ActionEvent(
        kind=kind,
        session_id=session_id,
        actor_id=str(actor_id),
        choice=choice,
        actor_name=actor_name,
        action_id=data.get('action_id'),
        message_chat_id=str(message['chat_id']) if message.get('chat_id') is not None else None,
        message_id=message.get('message_id'),
    )
