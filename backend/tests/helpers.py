"""Request helpers shared by the API tests."""


ONE_FIGHT_CARD = [
    {'fighter_a': 'Alpha', 'fighter_b': 'Charlie', 'country_a': 'US', 'country_b': 'BR'},
]


def create_game(client, fights=None, host_name='Hosty'):
    payload = {'name': 'Test Night', 'host_name': host_name}
    if fights is not None:
        payload['fights'] = fights
    res = client.post('/api/games/create', json=payload)
    assert res.status_code == 201
    return res.get_json()


def join(client, code, name):
    res = client.post('/api/games/join', json={'game_code': code, 'name': name})
    assert res.status_code == 201
    return res.get_json()


def fights_of(client, code):
    return client.get(f'/api/games/{code}/state').get_json()['fights']


def pick(client, code, player_id, fight_id, winner=None, method=None, round=None):
    return client.post(f'/api/games/{code}/picks', json={
        'player_id': player_id,
        'picks': [{'fight_id': fight_id, 'winner': winner, 'method': method, 'round': round}],
    })


def start(client, game):
    res = client.post(f"/api/games/{game['game_code']}/start", json={'controller_id': game['host_player_id']})
    assert res.status_code == 200
    return res.get_json()


def set_result(client, game, fight_id, **outcome):
    body = {'controller_id': game['host_player_id']}
    body.update(outcome)
    return client.post(f"/api/games/{game['game_code']}/fights/{fight_id}/result", json=body)


