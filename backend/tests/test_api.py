import time

import pytest

from bingo import get_registry
from bingo.services.lobby import restore_lobby
from conftest import ImmediateDisposalConfig, ShortGraceConfig


def test_create_lobby(client):
    res = client.post('/api/create-lobby', json={'boardSize': 3})
    assert res.status_code == 200
    data = res.get_json()
    assert data['boardSize'] == 3
    assert len(data['roomCode']) == 4
    assert data['roomCode'] == data['roomCode'].upper()
    assert len(data['adminSecret']) == 6
    assert data['roomCode'] in get_registry()


@pytest.mark.parametrize('size', [2, 17, 'abc', None])
def test_create_lobby_rejects_bad_size(client, size):
    res = client.post('/api/create-lobby', json={'boardSize': size})
    assert res.status_code == 400
    assert 'error' in res.get_json()
    assert len(get_registry()) == 0


def test_create_lobby_requires_board_size(client):
    res = client.post('/api/create-lobby', json={})
    assert res.status_code == 400


def test_create_lobby_insufficient_objectives(client):
    # 25 objectives in the test pool, 6x6 needs 36
    res = client.post('/api/create-lobby', json={'boardSize': 6})
    assert res.status_code == 500
    body = res.get_json()
    assert body['status'] == 500
    assert 'Not enough objectives' in body['error']
    assert len(get_registry()) == 0


def test_join_as_admin(client, room):
    res = client.post('/api/join-lobby', json={
        'roomCode': room['roomCode'], 'role': 'admin', 'adminSecret': room['adminSecret'],
    })
    assert res.status_code == 200
    body = res.get_json()
    assert body['ok'] is True
    snapshot = body['lobbySnapshot']
    assert snapshot['roomCode'] == room['roomCode']
    assert len(snapshot['board']) == 9
    assert 'adminSecret' not in snapshot


def test_join_as_admin_accepts_lowercase_code(client, room):
    res = client.post('/api/join-lobby', json={
        'roomCode': room['roomCode'].lower(), 'role': 'admin', 'adminSecret': room['adminSecret'],
    })
    assert res.status_code == 200


def test_join_as_admin_wrong_secret(client, room):
    res = client.post('/api/join-lobby', json={
        'roomCode': room['roomCode'], 'role': 'admin', 'adminSecret': 'nope',
    })
    assert res.status_code == 401
    assert res.get_json()['error'] == 'Invalid credential.'


def test_join_unknown_room(client):
    res = client.post('/api/join-lobby', json={'roomCode': 'ZZZZ', 'role': 'admin', 'adminSecret': 'x'})
    assert res.status_code == 404


def test_participants_cannot_join_over_http(client, room):
    res = client.post('/api/join-lobby', json={'roomCode': room['roomCode'], 'role': 'participant'})
    assert res.status_code == 400


def test_state_endpoint(client, room):
    res = client.get(f"/api/lobbies/{room['roomCode']}/state")
    assert res.status_code == 200
    state = res.get_json()
    assert state['boardSize'] == 3
    assert all(cell['team'] is None for cell in state['board'])
    assert state['participants'] == []
    assert state['pendingJoins'] == []
    assert state['pendingReviews'] == []
    assert client.get('/api/lobbies/NOPE/state').status_code == 404


def test_export_requires_admin_secret(client, room):
    code = room['roomCode']
    assert client.get(f'/api/lobbies/{code}/export').status_code == 401
    res = client.get(f'/api/lobbies/{code}/export', headers={'X-Admin-Secret': room['adminSecret']})
    assert res.status_code == 200
    exported = res.get_json()
    assert exported['adminSecret'] == room['adminSecret']
    assert len(exported['board']) == 9


def test_import_round_trip_and_conflict(client, room):
    code = room['roomCode']
    exported = client.get(f'/api/lobbies/{code}/export', headers={'X-Admin-Secret': room['adminSecret']}).get_json()

    # Same code is still live
    assert client.post('/api/lobbies/import', json=exported).status_code == 409

    get_registry().dispose(code)
    res = client.post('/api/lobbies/import', json=exported)
    assert res.status_code == 201
    assert res.get_json()['roomCode'] == code
    state = client.get(f'/api/lobbies/{code}/state').get_json()
    assert [c['name'] for c in state['board']] == [c['name'] for c in exported['board']]


def test_import_rejects_garbage(client):
    res = client.post('/api/lobbies/import', json={'roomCode': 'ABCD'})
    assert res.status_code == 400


def test_health(client, room):
    body = client.get('/health').get_json()
    assert body['status'] == 'ok'
    assert body['lobbies'] == 1
    assert body['objectives'] == 25


@pytest.mark.parametrize('app_config', [ImmediateDisposalConfig])
def test_zero_grace_does_not_dispose_at_creation(client, room):
    assert room['roomCode'] in get_registry()


def _export(client, room):
    return client.get(
        f"/api/lobbies/{room['roomCode']}/export",
        headers={'X-Admin-Secret': room['adminSecret']},
    ).get_json()


@pytest.mark.parametrize('app_config', [ShortGraceConfig])
def test_imported_lobby_is_disposed_when_idle(client, room):
    exported = _export(client, room)
    exported['roomCode'] = 'IMPT'
    assert client.post('/api/lobbies/import', json=exported).status_code == 201
    assert 'IMPT' in get_registry()

    time.sleep(0.8)
    assert 'IMPT' not in get_registry()
    assert room['roomCode'] not in get_registry()


@pytest.mark.parametrize('app_config', [ShortGraceConfig])
def test_old_timer_leaves_reused_code_alone(client, room):
    code = room['roomCode']
    exported = _export(client, room)
    registry = get_registry()
    # Dropped without clearing its pending timer, then the code is taken again
    registry.dispose(code)
    registry.register(restore_lobby(exported))

    time.sleep(0.6)
    assert code in get_registry()
