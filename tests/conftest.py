import os
import json
import tempfile

import pytest
from fastapi.testclient import TestClient

# Configure the app before it is imported so nothing touches the working tree
_IMPORT_DIR = tempfile.mkdtemp(prefix="dasitoty-test-")
os.environ['DATABASE_PATH'] = os.path.join(_IMPORT_DIR, 'import.sqlite3')
os.environ['UPLOAD_FOLDER'] = os.path.join(_IMPORT_DIR, 'uploads')
os.environ['PUBLIC_BASE_URL'] = 'http://testserver'
os.environ['SECRET_KEY'] = 'testsecret'

import database
import file_utils

# import app after env vars configured
from main import app

ADMIN_EMAIL = 'admin@example.com'
SUBADMIN_EMAIL = 'helper@example.com'
PASSWORD = 'secret123'


@pytest.fixture(autouse=True)
def fresh_store(tmp_path, monkeypatch):
    """Every test gets its own database file and upload folder."""
    monkeypatch.setattr(database, 'DB_NAME', str(tmp_path / 'test.sqlite3'))
    monkeypatch.setattr(file_utils, 'UPLOAD_FOLDER', str(tmp_path / 'uploads'))
    database.init_db()
    app.state.session_gate.reset()
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def admin_token(client):
    res = client.post('/auth/signup', json={'email': ADMIN_EMAIL, 'password': PASSWORD, 'username': 'owner'})
    assert res.status_code == 201
    return res.json()['access_token']


@pytest.fixture
def admin_headers(admin_token):
    return {'Authorization': f'Bearer {admin_token}'}


@pytest.fixture
def admin_id(client, admin_headers):
    return client.get('/auth/session', headers=admin_headers).json()['user_id']


@pytest.fixture
def subadmin_token(client, admin_headers):
    res = client.post('/functions/create-subadmin', json={'email': SUBADMIN_EMAIL, 'password': PASSWORD}, headers=admin_headers)
    assert res.status_code == 200
    res = client.post('/auth/login', json={'email': SUBADMIN_EMAIL, 'password': PASSWORD})
    assert res.status_code == 200
    return res.json()['access_token']


@pytest.fixture
def subadmin_headers(subadmin_token):
    return {'Authorization': f'Bearer {subadmin_token}'}


@pytest.fixture
def make_post(client, admin_headers):
    """Create a post through the dashboard endpoint and return the response body."""
    def _make_post(title='Test Clip', video_links=None, thumbnail_url='https://img.example/a.jpg', headers=None):
        res = client.post('/admin/posts', data={
            'title': title,
            'thumbnail_url': thumbnail_url,
            'video_links': json.dumps(video_links or []),
        }, headers=headers or admin_headers)
        assert res.status_code == 201, res.text
        return res.json()['post']
    return _make_post
