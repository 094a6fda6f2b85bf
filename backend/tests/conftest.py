import os
import sys
import pytest

# Ensure the backend root (containing the `tracker` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from tracker import create_app, db, socketio
from tracker.services.tournament.state import TournamentState


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    ENFORCE_RAW_TOTAL = False
    RAW_TOTAL = 100000
    DEFAULT_TOP_K = 4


class StrictTotalConfig(TestConfig):
    ENFORCE_RAW_TOTAL = True


def _make_app(config_class):
    application = create_app(config_class)
    with application.app_context():
        import tracker.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def flask_app():
    yield from _make_app(TestConfig)


@pytest.fixture()
def strict_app():
    yield from _make_app(StrictTotalConfig)


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


@pytest.fixture()
def state():
    """Fresh in-memory tournament with the default eight players p1..p8."""
    return TournamentState()
