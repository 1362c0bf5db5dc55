# pethero/api/auth/test_auth_routes.py


def test_first_login_creates_profile_with_free_credit(client, app):
    response = client.post('/api/auth/firebase', json={'id_token': 'valid:user-9'})

    assert response.status_code == 200
    body = response.get_json()
    assert body['user_id'] == 'user-9'
    assert body['is_new_user'] is True
    assert body['credits'] == 1
    assert body['access_token'] and body['refresh_token']

    user = app.fake_db.data('users', 'user-9')
    assert user['credits'] == 1
    assert user['premium'] is False


def test_second_login_keeps_existing_profile(client, app):
    app.fake_db.put('users', 'user-9', {'credits': 12, 'premium': True})

    body = client.post('/api/auth/firebase', json={'id_token': 'valid:user-9'}).get_json()

    assert body['is_new_user'] is False
    assert body['credits'] == 12


def test_invalid_id_token_is_rejected(client, app):
    response = client.post('/api/auth/firebase', json={'id_token': 'forged'})

    assert response.status_code == 401
    assert response.get_json()['error_code'] == 'INVALID_ID_TOKEN'
    assert app.fake_db.all('users') == []


def test_missing_id_token(client):
    response = client.post('/api/auth/firebase', json={})
    assert response.status_code == 400


def test_refresh_token_issues_access_token(client):
    tokens = client.post('/api/auth/firebase', json={'id_token': 'valid:user-9'}).get_json()

    response = client.post('/api/auth/token/refresh',
                           headers={'Authorization': f"Bearer {tokens['refresh_token']}"})

    assert response.status_code == 200
    assert response.get_json()['access_token']
