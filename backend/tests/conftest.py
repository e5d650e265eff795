import os
import sys
import pytest

# Ensure the backend root (containing the `escapequiz` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from escapequiz import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    APP_ID = 'test-app'
    ADMIN_USERNAMES = ['admin']
    ATTEMPTS_PAGE_SIZE = 200
    BCRYPT_LOG_ROUNDS = 4


QUESTIONS = {
    'questions': [
        {'id': '1a', 'title': 'Resistance', 'prompt': '<p>Unit of resistance?</p>', 'correctAnswer': 'Ohm', 'nextQuestionId': '1b'},
        {'id': '1b', 'title': 'Current', 'prompt': '<p>Unit of current?</p>', 'correctAnswer': 'Ampere', 'nextQuestionId': '1c'},
        {'id': '1c', 'title': 'Final', 'prompt': '<p>Unit of charge?</p>', 'correctAnswer': 'Coulomb', 'nextQuestionId': None},
    ]
}


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import escapequiz.models  # noqa: F401
        db.create_all()
    # No context stays pushed: each request gets its own `g` (and logged-in user)
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def app_ctx(flask_app):
    """App context for calling services directly (do not mix with HTTP clients)."""
    with flask_app.app_context():
        yield flask_app
        db.session.remove()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_user_client(flask_app):
    """Factory: a test client logged in as a freshly registered user."""
    def _make(username, password='password'):
        user_client = flask_app.test_client()
        res = user_client.post('/register', json={'username': username, 'password': password})
        assert res.status_code == 201, res.get_json()
        return user_client
    return _make


@pytest.fixture()
def admin_client(make_user_client):
    return make_user_client('admin')


@pytest.fixture()
def make_team_client(make_user_client):
    """Factory: a logged-in client whose user has registered a team."""
    def _make(name):
        team_client = make_user_client(f"user-{name.lower()}")
        res = team_client.post('/api/teams/register', json={'name': name})
        assert res.status_code == 201, res.get_json()
        return team_client
    return _make


@pytest.fixture()
def questions_payload():
    return QUESTIONS


@pytest.fixture()
def uploaded(admin_client):
    res = admin_client.post('/api/admin/questions', json=QUESTIONS)
    assert res.status_code == 200, res.get_json()
    return res.get_json()


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
