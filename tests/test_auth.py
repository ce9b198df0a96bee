import database
from auth import decode_access_token
from main import app
from conftest import ADMIN_EMAIL, PASSWORD


def test_signup_open_until_admin_exists(client):
    assert client.get('/auth/admin-exists').json() == {'admin_exists': False}
    res = client.post('/auth/signup', json={'email': ADMIN_EMAIL, 'password': PASSWORD})
    assert res.status_code == 201
    assert res.json()['role'] == 'admin'
    assert client.get('/auth/admin-exists').json() == {'admin_exists': True}

    res = client.post('/auth/signup', json={'email': 'second@example.com', 'password': PASSWORD})
    assert res.status_code == 400
    assert res.json()['detail'] == 'Admin already exists. Please login instead.'


def test_signup_validation_returns_first_message(client):
    res = client.post('/auth/signup', json={'email': 'not-an-email', 'password': PASSWORD})
    assert res.status_code == 400
    assert res.json()['detail'] == 'Invalid email address'

    res = client.post('/auth/signup', json={'email': ADMIN_EMAIL, 'password': '123'})
    assert res.status_code == 400
    assert res.json()['detail'] == 'Password must be at least 6 characters'


def test_login_and_session(client, admin_token):
    res = client.post('/auth/login', json={'email': ADMIN_EMAIL.upper(), 'password': PASSWORD})
    assert res.status_code == 200
    token = res.json()['access_token']

    session = client.get('/auth/session', headers={'Authorization': f'Bearer {token}'}).json()
    assert session['email'] == ADMIN_EMAIL
    assert session['role'] == 'admin'
    assert session['can_delete_posts'] is True
    assert session['can_manage_subadmins'] is True


def test_login_rejects_wrong_password(client, admin_token):
    res = client.post('/auth/login', json={'email': ADMIN_EMAIL, 'password': 'wrong-password'})
    assert res.status_code == 401
    assert res.json()['detail'] == 'Invalid email or password'


def test_anonymous_session(client):
    session = client.get('/auth/session').json()
    assert session['role'] == 'anonymous'
    assert session['can_access_dashboard'] is False


def test_logout_invalidates_token(client, admin_headers):
    assert client.get('/admin/dashboard', headers=admin_headers).status_code == 200
    res = client.post('/auth/logout', headers=admin_headers)
    assert res.json() == {'msg': 'Signed out'}

    assert client.get('/auth/session', headers=admin_headers).json()['role'] == 'anonymous'
    res = client.get('/admin/dashboard', headers=admin_headers)
    assert res.status_code == 401
    assert res.json()['detail'] == {'message': 'Please login first', 'redirect_to': '/auth'}
    assert client.post('/auth/logout', headers=admin_headers).json() == {'msg': 'Already signed out'}


def test_refresh_reflects_role_changes(client, admin_headers, subadmin_headers):
    helper_id = client.get('/auth/session', headers=subadmin_headers).json()['user_id']
    res = client.post('/auth/refresh', headers=subadmin_headers)
    assert res.status_code == 200
    assert res.json()['role'] == 'subadmin'

    assert client.delete(f'/admin/subadmins/{helper_id}', headers=admin_headers).status_code == 200
    res = client.post('/auth/refresh', headers=subadmin_headers)
    assert res.json()['role'] == 'authenticated'
    assert client.get('/admin/dashboard', headers=subadmin_headers).status_code == 403


def test_refresh_requires_session(client):
    res = client.post('/auth/refresh')
    assert res.status_code == 401


def session_id_of(token):
    return decode_access_token(token)['sid']


def test_expired_session_is_evicted(client, admin_token, admin_headers):
    sid = session_id_of(admin_token)
    assert sid in app.state.session_gate

    with database.get_db() as conn:
        conn.execute("UPDATE auth_sessions SET expires_at = ? WHERE id = ?", ('2000-01-01T00:00:00+00:00', sid))
        conn.commit()

    assert client.get('/auth/session', headers=admin_headers).json()['role'] == 'anonymous'
    assert sid not in app.state.session_gate


def test_missing_session_row_is_evicted(client, admin_token, admin_headers):
    sid = session_id_of(admin_token)
    with database.get_db() as conn:
        conn.execute("DELETE FROM auth_sessions WHERE id = ?", (sid,))
        conn.commit()

    assert client.get('/admin/dashboard', headers=admin_headers).status_code == 401
    assert sid not in app.state.session_gate


def test_logout_drops_projection(client, admin_token, admin_headers):
    sid = session_id_of(admin_token)
    client.post('/auth/logout', headers=admin_headers)
    assert sid not in app.state.session_gate
