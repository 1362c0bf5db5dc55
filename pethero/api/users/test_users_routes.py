# pethero/api/users/test_users_routes.py
from datetime import datetime, timezone


def test_register_fcm_token(client, auth_headers, app):
    response = client.post('/api/users/me/fcm-token', json={'fcm_token': 'token-xyz'}, headers=auth_headers())

    assert response.status_code == 200
    user = app.fake_db.data('users', 'user-1')
    assert user['fcmToken'] == 'token-xyz'
    assert user['tokenUpdatedAt'] is not None


def test_register_fcm_token_keeps_existing_fields(client, auth_headers, app):
    app.fake_db.put('users', 'user-1', {'credits': 4, 'premium': True})

    client.post('/api/users/me/fcm-token', json={'fcm_token': 'token-xyz'}, headers=auth_headers())

    user = app.fake_db.data('users', 'user-1')
    assert user['credits'] == 4
    assert user['premium'] is True


def test_register_fcm_token_requires_token(client, auth_headers):
    response = client.post('/api/users/me/fcm-token', json={}, headers=auth_headers())

    assert response.status_code == 400
    assert 'fcm_token' in response.get_json()['details']


def test_get_credits_for_unknown_user(client, auth_headers):
    response = client.get('/api/users/me/credits', headers=auth_headers())

    assert response.status_code == 200
    assert response.get_json() == {'exists': False, 'credits': 0, 'premium': False}


def test_get_credits(client, auth_headers, app):
    app.fake_db.put('users', 'user-1', {
        'credits': 7, 'premium': False,
        'createdAt': datetime(2024, 5, 1, tzinfo=timezone.utc),
        'lastUpdated': datetime(2024, 5, 2, tzinfo=timezone.utc),
    })

    body = client.get('/api/users/me/credits', headers=auth_headers()).get_json()

    assert body['exists'] is True
    assert body['credits'] == 7
    assert body['created_at'].startswith('2024-05-01T00:00:00')


def test_add_credits_creates_then_increments(client, auth_headers, app):
    app.config['ALLOW_SELF_SERVICE_CREDITS'] = True

    first = client.post('/api/users/me/credits', json={'credits': 5}, headers=auth_headers())
    second = client.post('/api/users/me/credits', json={'credits': 2}, headers=auth_headers())

    assert first.status_code == 200
    assert first.get_json()['credits'] == 5
    assert second.get_json()['credits'] == 7
    assert app.fake_db.data('users', 'user-1')['credits'] == 7


def test_add_credits_rejects_invalid_amount(client, auth_headers, app):
    app.config['ALLOW_SELF_SERVICE_CREDITS'] = True

    response = client.post('/api/users/me/credits', json={'credits': 0}, headers=auth_headers())

    assert response.status_code == 400


def test_add_credits_forbidden_when_disabled(client, auth_headers, app):
    app.config['ALLOW_SELF_SERVICE_CREDITS'] = False

    response = client.post('/api/users/me/credits', json={'credits': 5}, headers=auth_headers())

    assert response.status_code == 403
    assert app.fake_db.data('users', 'user-1') is None
