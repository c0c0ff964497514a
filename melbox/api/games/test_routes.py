# melbox/api/games/test_routes.py
"""
Mini-game level progress and points.

Usage: python -m pytest melbox/api/games/test_routes.py -v
"""

def _save(client, headers, game_id, level, points):
    return client.post(f'/api/games/{game_id}/levels', json={'level': level, 'points': points}, headers=headers)


def test_best_score_per_level(client, auth_headers):
    headers = auth_headers()

    first = _save(client, headers, 'counting', 1, 40).get_json()
    assert first['total_points'] == 40
    assert first['next_unlocked_level'] == 2

    assert _save(client, headers, 'counting', 1, 10).get_json()['total_points'] == 40
    improved = _save(client, headers, 'counting', 1, 70).get_json()
    assert improved['total_points'] == 70
    assert improved['level_scores'] == {'1': 70}
    assert improved['completed_levels'] == [1]

def test_games_are_tracked_separately(client, auth_headers):
    headers = auth_headers()
    _save(client, headers, 'counting', 1, 40)
    _save(client, headers, 'counting', 2, 15)
    _save(client, headers, 'spelling', 1, 20)

    counting = client.get('/api/games/counting/progress', headers=headers).get_json()
    assert counting['total_points'] == 55
    assert counting['next_unlocked_level'] == 3

    summary = client.get('/api/games/summary', headers=headers).get_json()
    assert summary['total_points'] == 75
    assert summary['total_levels_completed'] == 3
    assert summary['total_games_played'] == 2
    assert set(summary['games']) == {'counting', 'spelling'}

    assert client.get('/api/games/points', headers=headers).get_json() == {'total_points': 75}
    assert client.get('/api/games/points', headers=auth_headers(user_id='u2')).get_json() == {'total_points': 0}

def test_unplayed_game_starts_at_level_one(client, auth_headers):
    progress = client.get('/api/games/painting/progress', headers=auth_headers()).get_json()
    assert progress['total_points'] == 0
    assert progress['completed_levels'] == []
    assert progress['next_unlocked_level'] == 1

def test_level_validation(client, auth_headers):
    headers = auth_headers()
    assert _save(client, headers, 'counting', 0, 10).status_code == 400
    assert _save(client, headers, 'counting', 1, -5).status_code == 400
    assert _save(client, headers, 'chess', 1, 10).status_code == 400
    assert client.get('/api/games/chess/progress', headers=headers).status_code == 400
    assert client.post('/api/games/counting/levels', json={'level': 1, 'points': 10}).status_code == 401
