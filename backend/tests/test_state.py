import json

import pytest

from rps_helper.errors import InvalidTransition
from rps_helper.services.games import state as st
from rps_helper.services.games.state import GameState, display_name


def test_offer_can_move_to_pvp_but_never_back():
    state = GameState()
    state.advance(st.AWAITING_OFFER_RESPONSE)
    assert state.mode == st.OFFER
    state.advance(st.AWAITING_BOTH_CHOICES)
    assert state.mode == st.PVP
    with pytest.raises(InvalidTransition):
        state.advance(st.AWAITING_OFFER_RESPONSE)


def test_direct_challenge_cannot_go_to_pvb():
    state = GameState()
    state.advance(st.AWAITING_DIRECT_RESPONSE)
    with pytest.raises(InvalidTransition):
        state.advance(st.AWAITING_PLAYER_CHOICE)


def test_terminal_statuses_have_no_exits():
    state = GameState()
    state.advance(st.AWAITING_OFFER_RESPONSE)
    state.advance(st.TIMED_OUT)
    assert not state.is_waiting
    with pytest.raises(InvalidTransition):
        state.advance(st.CANCELLED)


def test_blob_keeps_upstream_keys_and_resets_progress():
    raw = json.dumps({
        'initiator_name': 'Alice',
        'message_id': 77,
        'wager': 25,
        'status': 'awaiting_both_choices',
        'p1_choice': 'rock',
    })
    state = GameState.from_json(raw)
    assert state.status is None
    assert state.p1_choice is None
    assert state.message_id == 77
    dumped = json.loads(state.to_json())
    assert dumped['wager'] == 25
    assert dumped['initiator_name'] == 'Alice'


def test_unparseable_blob_gives_defaults():
    state = GameState.from_json('{not json')
    assert state.initiator_name == 'Mystery Player'
    assert state.message_id is None


def test_display_name_rules():
    assert display_name(None) == 'Mystery Player'
    assert display_name({'id': 5, 'username': 'zed'}) == '@zed'
    assert display_name({'id': 5, 'first_name': 'Zed'}) == 'Zed'
    assert display_name({'id': 987654}) == 'Player 7654'
