from rps_helper.models import SessionStatus
from rps_helper.services.games import state as st


def test_offer_accepted_by_third_party_then_initiator_wins(worker, seed_session, transport, act, load_row):
    sid = seed_session('g-e2e')
    worker.claim('g-e2e')

    res = act('accept_pvp_offer', sid, '333', actor_name='@carol')
    assert res.accepted
    active = worker.sessions[sid]
    assert active.opponent_id == '333'
    assert active.state.mode == st.PVP
    assert active.state.status == st.AWAITING_BOTH_CHOICES
    # private prompts went to both players
    assert {m['chat_id'] for m in transport.of('send')} == {'111', '333'}

    first = act('submit_pvp_choice', sid, '111', 'rock')
    assert first.accepted
    assert first.notice == 'Your choice is locked in!'
    assert first.status == st.AWAITING_BOTH_CHOICES
    assert sid in worker.sessions

    second = act('submit_pvp_choice', sid, '333', 'scissors')
    assert second.accepted
    assert second.status == st.RESOLVED
    assert sid not in worker.sessions

    row = load_row(sid)
    assert row.status == SessionStatus.COMPLETED_P1_WIN
    assert row.opponent_id == '333'
    final_state = row.to_dict()['game_state']
    assert final_state['p1_choice'] == 'rock'
    assert final_state['p2_choice'] == 'scissors'
    assert final_state['outcome']['verdict'] == 'win_initiator'
    assert 'rock' in final_state['outcome']['description']
    assert 'crushes scissors' in final_state['outcome']['description']
    assert 'Duel Result' in transport.texts()[-1]


def test_pvp_opponent_win_and_draw(worker, seed_session, act, load_row):
    a = seed_session('g-p2', opponent_id='222', opponent_name='Bob')
    b = seed_session('g-push', opponent_id='222', opponent_name='Bob')
    worker.claim('g-p2')
    worker.claim('g-push')
    for sid in (a, b):
        act('accept_direct', sid, '222')

    act('submit_pvp_choice', a, '222', 'rock')
    act('submit_pvp_choice', a, '111', 'scissors')
    act('submit_pvp_choice', b, '111', 'paper')
    act('submit_pvp_choice', b, '222', 'paper')

    assert load_row(a).status == SessionStatus.COMPLETED_P2_WIN
    assert load_row(b).status == SessionStatus.COMPLETED_PUSH


def test_pvp_choice_ack_edits_private_prompt(worker, seed_session, transport, act):
    sid = seed_session('g-dm', opponent_id='222')
    worker.claim('g-dm')
    act('accept_direct', sid, '222')
    act('submit_pvp_choice', sid, '222', 'paper', message={'chat_id': '222', 'message_id': 41}, action_id='q-9')
    dm_edit = transport.of('edit')[-1]
    assert dm_edit == {'chat_id': '222', 'message_id': 41, 'text': 'Your choice has been locked in secretly.', 'buttons': None}
    assert transport.of('answer')[-1]['text'] == 'Your choice is locked in!'


def test_pvb_player_wins(worker, seed_session, transport, act, load_row):
    # bot always plays scissors in tests
    sid = seed_session('g-pvb')
    worker.claim('g-pvb')
    assert act('accept_bot', sid, '111').accepted
    assert worker.sessions[sid].state.status == st.AWAITING_PLAYER_CHOICE

    res = act('submit_pvb_choice', sid, '111', 'rock')
    assert res.accepted
    row = load_row(sid)
    assert row.status == SessionStatus.COMPLETED_P1_WIN
    assert row.to_dict()['game_state']['bot_choice'] == 'scissors'
    assert 'RPS Result' in transport.texts()[-1]


def test_pvb_draw_is_push_and_loss_is_bot_win(worker, seed_session, act, load_row):
    draw = seed_session('g-pvb-draw')
    loss = seed_session('g-pvb-loss')
    for gid, sid in (('g-pvb-draw', draw), ('g-pvb-loss', loss)):
        worker.claim(gid)
        act('accept_bot', sid, '111')
    act('submit_pvb_choice', draw, '111', 'scissors')
    act('submit_pvb_choice', loss, '111', 'paper')
    assert load_row(draw).status == SessionStatus.COMPLETED_PUSH
    assert load_row(loss).status == SessionStatus.COMPLETED_BOT_WIN


def test_initiator_cancels_offer(worker, seed_session, transport, act, load_row):
    sid = seed_session('g-cancel')
    worker.claim('g-cancel')
    res = act('cancel_offer', sid, '111')
    assert res.accepted
    assert transport.of('delete') == [{'chat_id': '-100', 'message_id': 500}]
    assert load_row(sid).status == SessionStatus.COMPLETED_CANCELLED
    assert worker.sessions == {}


def test_opponent_declines_direct_challenge(worker, seed_session, transport, act, load_row):
    sid = seed_session('g-decline', opponent_id='222', opponent_name='Bob')
    worker.claim('g-decline')
    res = act('decline_direct', sid, '222')
    assert res.accepted
    assert 'Bob declined the duel.' in transport.texts()[-1]
    assert load_row(sid).status == SessionStatus.COMPLETED_CANCELLED


def test_display_names_are_escaped(worker, seed_session, transport, act):
    sid = seed_session('g-html')
    worker.claim('g-html')
    act('accept_pvp_offer', sid, '333', actor_name='<b>x</b>')
    assert '&lt;b&gt;x&lt;/b&gt;' in transport.of('edit')[-1]['text']
