import os
import sys
import pytest

# Ensure the backend root (containing the `tictactoe_server` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from tictactoe_server import create_app, socketio

NAMESPACE = '/ws'


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    HOST = '127.0.0.1'
    PORT = 12345
    SOCKETIO_NAMESPACE = NAMESPACE
    CORS_ORIGINS = ['http://localhost:5173']
    DISCONNECT_POLICY = 'terminate'
    OUTBOX_MAXSIZE = 64
    NAME_MAX_LENGTH = 32
    LOG_LEVEL = 'DEBUG'


class RefillConfig(TestConfig):
    DISCONNECT_POLICY = 'refill'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def acceptor(flask_app):
    return flask_app.extensions['session_acceptor']


@pytest.fixture()
def connect(flask_app):
    """Factory opening Socket.IO test clients; all are disconnected at teardown."""
    opened = []

    def _connect(app=None):
        test_client = socketio.test_client(app or flask_app, namespace=NAMESPACE)
        opened.append(test_client)
        return test_client

    yield _connect
    for test_client in opened:
        try:
            if test_client.is_connected(NAMESPACE):
                test_client.disconnect(namespace=NAMESPACE)
        except RuntimeError:
            pass


@pytest.fixture()
def pair(connect):
    """Two connected participants: (slot 1, slot 2), initial events flushed."""
    p1 = connect()
    p2 = connect()
    p1.get_received(NAMESPACE)
    p2.get_received(NAMESPACE)
    return p1, p2


@pytest.fixture()
def named_pair(pair):
    """Two participants whose names are in and whose first game has started."""
    p1, p2 = pair
    p1.emit('submit_name', {'name': 'Alice'}, namespace=NAMESPACE)
    p2.emit('submit_name', {'name': 'Bob'}, namespace=NAMESPACE)
    p1.get_received(NAMESPACE)
    p2.get_received(NAMESPACE)
    return p1, p2


def events(test_client, name=None):
    """Drain received packets; optionally keep only one event name."""
    received = test_client.get_received(NAMESPACE)
    if name is None:
        return received
    return [pkt['args'][0] for pkt in received if pkt['name'] == name]


def names(test_client):
    return [pkt['name'] for pkt in test_client.get_received(NAMESPACE)]
