PAIRS = [
    {'id': 'g1', 'name': 'Group A', 'members': ['p1', 'p2']},
    {'id': 'g2', 'name': 'Group B', 'members': ['p3', 'p4']},
    {'id': 'g3', 'name': 'Group C', 'members': ['p5', 'p6']},
    {'id': 'g4', 'name': 'Group D', 'members': ['p7', 'p8']},
]

ROUND = {'seats': [
    {'player_id': 'p1', 'raw': 45000},
    {'player_id': 'p3', 'raw': 33000},
    {'player_id': 'p5', 'raw': 25000},
    {'player_id': 'p7', 'raw': 20000},
]}


def test_index(client):
    assert client.get('/').status_code == 200
    assert client.get('/health').get_json() == {'status': 'ok'}


def test_default_state(client):
    res = client.get('/api/tournament/state')
    assert res.status_code == 200
    data = res.get_json()
    assert len(data['roster']) == 8
    assert data['rank_bonus'] == [20, 10, -10, -20]
    assert data['top_k'] == 4
    assert data['grouping_enabled'] is False
    assert data['grouping_locked'] is False
    assert data['groups_board'] == []
    assert len(data['players_board']) == 8


def test_player_crud(client):
    res = client.post('/api/tournament/players', json={'name': 'Mika', 'avatar': '/avatars/mika.png'})
    assert res.status_code == 201
    mika = res.get_json()
    assert mika['name'] == 'Mika'

    res = client.patch(f"/api/tournament/players/{mika['id']}", json={'note': 'alternate'})
    assert res.status_code == 200
    assert res.get_json()['note'] == 'alternate'

    players = client.get('/api/tournament/players').get_json()
    assert any(p['id'] == mika['id'] for p in players)

    res = client.delete(f"/api/tournament/players/{mika['id']}")
    assert res.status_code == 200
    assert client.delete(f"/api/tournament/players/{mika['id']}").status_code == 404
    state = client.get('/api/tournament/state').get_json()
    assert mika['id'] not in state['ledger']


def test_player_validation_errors(client):
    res = client.post('/api/tournament/players', json={'name': '   '})
    assert res.status_code == 400
    assert res.get_json()['rule'] == 'player_name'
    assert client.patch('/api/tournament/players/nope', json={'name': 'X'}).status_code == 404
    assert client.post('/api/tournament/players', json=['Mika']).status_code == 400
    for res in (client.post('/api/tournament/players', json={'name': 5}),
                client.patch('/api/tournament/players/p1', json={'name': 5})):
        assert res.status_code == 400
        assert res.get_json()['rule'] == 'player_name'
    assert client.get('/api/tournament/state').get_json()['roster'][0]['name'] == 'Sitaowex'


def test_submit_round_updates_boards(client):
    res = client.post('/api/tournament/rounds', json=ROUND)
    assert res.status_code == 201
    data = res.get_json()
    assert [b['delta'] for b in data['round']['breakdown']] == [35, 13, -15, -30]
    assert data['ledger']['p1'] == 35
    assert data['players_board'][0]['player_id'] == 'p1'
    assert data['players_board'][-1]['player_id'] == 'p7'

    history = client.get('/api/tournament/rounds').get_json()
    assert len(history) == 1
    assert history[0]['seats'][1]['seat'] == 'South'
    assert history[0]['seats'][1]['player']['id'] == 'p3'


def test_submit_round_with_parallel_lists(client):
    res = client.post('/api/tournament/rounds', json={
        'seats': ['p5', 'p6', 'p7', 'p8'],
        'raw_scores': ['30000', '30000', '28000', '12000'],
    })
    assert res.status_code == 201
    breakdown = res.get_json()['round']['breakdown']
    assert breakdown[0]['delta'] == 20
    assert breakdown[1]['delta'] == 10


def test_invalid_round_is_rejected(client):
    bad = {'seats': [{'player_id': 'p1', 'raw': 1}, {'player_id': 'p1', 'raw': 1},
                     {'player_id': 'p2', 'raw': 1}, {'player_id': 'p3', 'raw': 1}]}
    res = client.post('/api/tournament/rounds', json=bad)
    assert res.status_code == 400
    assert res.get_json()['rule'] == 'duplicate_player'
    assert client.post('/api/tournament/rounds', json={}).status_code == 400
    assert client.get('/api/tournament/rounds').get_json() == []


def test_raw_total_enforced_when_configured(strict_app):
    client = strict_app.test_client()
    res = client.post('/api/tournament/rounds', json=ROUND)
    assert res.status_code == 400
    assert res.get_json()['rule'] == 'total_mismatch'
    exact = {'seats': ['p1', 'p2', 'p3', 'p4'], 'raw_scores': [40000, 30000, 20000, 10000]}
    assert client.post('/api/tournament/rounds', json=exact).status_code == 201


def test_settings(client):
    res = client.put('/api/tournament/settings/rank-bonus', json={'rank_bonus': [30, '10', -10, -30]})
    assert res.status_code == 200
    assert res.get_json()['rank_bonus'] == [30, 10, -10, -30]
    assert client.put('/api/tournament/settings/rank-bonus', json={'rank_bonus': [1, 2, 3]}).status_code == 400
    assert client.put('/api/tournament/settings/rank-bonus', json={'rank_bonus': [1, 2, 3, 'x']}).status_code == 400

    assert client.put('/api/tournament/settings/top-k', json={'top_k': 2}).get_json() == {'top_k': 2}
    assert client.put('/api/tournament/settings/top-k', json={'top_k': 0}).status_code == 400
    assert client.put('/api/tournament/settings/top-k', json={'top_k': 9}).status_code == 400
    assert client.put('/api/tournament/settings/top-k', json={'top_k': 2.5}).status_code == 400

    board = client.get('/api/tournament/leaderboard/players').get_json()
    assert board['top_k'] == 2
    assert [e['above_divider'] for e in board['entries']].count(True) == 2

    res = client.post('/api/tournament/rounds', json=ROUND)
    assert res.get_json()['round']['breakdown'][0]['delta'] == 45


def test_grouping_flow_and_lock(client):
    res = client.put('/api/tournament/grouping', json={'enabled': True, 'groups': PAIRS})
    assert res.status_code == 200
    assert res.get_json()['grouping_enabled'] is True

    bad = client.put('/api/tournament/grouping', json={'enabled': True, 'groups': PAIRS[:1] + [
        {'id': 'g2', 'name': 'Group B', 'members': ['p1', 'p3']}]})
    assert bad.status_code == 400
    assert bad.get_json()['rule'] == 'group_overlap'

    client.post('/api/tournament/rounds', json=ROUND)
    groups = client.get('/api/tournament/leaderboard/groups').get_json()
    assert groups['grouping_enabled'] is True
    assert [e['group_id'] for e in groups['entries']] == ['g1', 'g2', 'g3', 'g4']
    assert [e['winning'] for e in groups['entries']] == [True, True, False, False]

    locked = client.put('/api/tournament/grouping', json={'enabled': False, 'groups': []})
    assert locked.status_code == 403
    assert locked.get_json()['rule'] == 'grouping_locked'
    assert client.get('/api/tournament/state').get_json()['grouping_enabled'] is True


def test_reset_clears_scores_and_grouping(client):
    client.put('/api/tournament/grouping', json={'enabled': True, 'groups': PAIRS})
    client.put('/api/tournament/settings/rank-bonus', json={'rank_bonus': [5, 1, -1, -5]})
    client.post('/api/tournament/rounds', json=ROUND)
    data = client.post('/api/tournament/reset').get_json()
    assert data['rounds'] == []
    assert set(data['ledger'].values()) == {0}
    assert data['grouping_enabled'] is False
    assert data['rank_bonus'] == [5, 1, -1, -5]
    assert client.put('/api/tournament/grouping', json={'enabled': True, 'groups': PAIRS}).status_code == 200


def test_restore_defaults(client):
    client.post('/api/tournament/players', json={'name': 'Mika'})
    client.patch('/api/tournament/players/p1', json={'name': 'Renamed'})
    client.put('/api/tournament/settings/rank-bonus', json={'rank_bonus': [5, 1, -1, -5]})
    client.post('/api/tournament/rounds', json=ROUND)
    data = client.post('/api/tournament/reset/defaults').get_json()
    assert len(data['roster']) == 8
    assert data['roster'][0]['name'] == 'Sitaowex'
    assert data['rank_bonus'] == [20, 10, -10, -20]
    assert data['rounds'] == []


def test_state_survives_app_restart(flask_app, client):
    from tracker.services.tournament.store import forget_state
    client.post('/api/tournament/rounds', json=ROUND)
    client.put('/api/tournament/settings/top-k', json={'top_k': 3})
    forget_state(flask_app)
    data = client.get('/api/tournament/state').get_json()
    assert len(data['rounds']) == 1
    assert data['ledger']['p1'] == 35
    assert data['top_k'] == 3
    assert data['grouping_locked'] is True


def test_grouping_members_must_be_a_list(client):
    for members in (5, 'p1p2'):
        res = client.put('/api/tournament/grouping', json={'enabled': True, 'groups': [
            {'id': 'g1', 'name': 'Group A', 'members': members}]})
        assert res.status_code == 400
        assert res.get_json()['rule'] == 'group_members'
    assert client.get('/api/tournament/state').get_json()['grouping_enabled'] is False


def test_removing_players_keeps_top_k_within_roster(flask_app, client):
    from tracker.services.tournament.store import forget_state
    assert client.put('/api/tournament/settings/top-k', json={'top_k': 8}).status_code == 200
    for pid in ('p1', 'p2', 'p3', 'p4', 'p5'):
        assert client.delete(f'/api/tournament/players/{pid}').status_code == 200
    state = client.get('/api/tournament/state').get_json()
    assert len(state['roster']) == 3
    assert state['top_k'] == 3
    board = client.get('/api/tournament/leaderboard/players').get_json()
    assert board['top_k'] == 3
    assert len(board['entries']) == 3
    forget_state(flask_app)
    assert client.get('/api/tournament/state').get_json()['top_k'] == 3
