import os
import sys
import pytest

# Ensure the backend root (containing the `nerveword` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from nerveword import create_app, db, socketio
from nerveword.rules import Ruleset
from nerveword.services.game import sessions as lobby
from nerveword.store import MemorySessionStore


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    STORAGE_BACKEND = 'memory'
    CORS_ORIGINS = []


def _config_for(backend):
    return type(f'TestConfig_{backend}', (TestConfig,), {'STORAGE_BACKEND': backend})


@pytest.fixture(params=['memory', 'sql'])
def flask_app(request):
    application = create_app(_config_for(request.param))
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture(params=['memory', 'sql'])
def store(request):
    if request.param == 'memory':
        yield MemorySessionStore()
        return
    application = create_app(_config_for('sql'))
    with application.app_context():
        db.create_all()
        yield application.extensions['nerveword'].store
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def rules():
    return Ruleset()


@pytest.fixture()
def new_session(store, rules):
    """Factory: a session run by 'gm' with the given players seated in join order."""
    def _make(*user_ids, name='Test Session'):
        session = lobby.create_session(store, rules, name, 'gm')
        for user_id in user_ids:
            lobby.join_session(store, rules, session.code, user_id, player_name=user_id.upper())
        return store.get_session(session.id)
    return _make


def http_session(client, *user_ids, gm='gm'):
    """Create a session over HTTP and join the given players. Returns the session dict."""
    session = client.post('/api/sessions', json={'user_id': gm, 'name': 'Table'}).get_json()
    for user_id in user_ids:
        res = client.post('/api/sessions/join', json={'code': session['code'], 'user_id': user_id})
        assert res.status_code == 201
    return session
