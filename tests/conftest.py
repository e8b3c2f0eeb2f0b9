import pytest

from communityhub import create_app
from communityhub.extensions import db, socketio
from communityhub.functions import store

PRIMARY_ADMIN_PHONE = '7030809030'


class FakeOtpSender:
    """Records codes instead of calling WhatsApp."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def __call__(self, phone, code):
        if self.fail:
            return False
        self.sent.append((phone, code))
        return True

    def last_code(self, phone):
        for sent_phone, code in reversed(self.sent):
            if sent_phone == phone:
                return code
        return None


@pytest.fixture
def otp_sender():
    return FakeOtpSender()


@pytest.fixture
def app(tmp_path, otp_sender):
    flask_app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SOCKETIO_ASYNC_MODE': 'threading',
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'PRIMARY_ADMIN_PHONE': PRIMARY_ADMIN_PHONE,
        'LOG_LEVEL': 'WARNING',
    })
    flask_app.extensions['communityhub.otp_sender'] = otp_sender
    yield flask_app
    with flask_app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def make_member(app):
    """Create a member and return its id."""
    def _make(name, phone, role='member'):
        with app.app_context():
            return store.create_member(name, phone, role=role).id
    return _make


@pytest.fixture
def primary_admin_id(app):
    with app.app_context():
        return store.get_member_by_phone(PRIMARY_ADMIN_PHONE).id


@pytest.fixture
def login(app, otp_sender):
    """Return a test client logged in as the member with ``phone``."""
    def _login(phone):
        client = app.test_client()
        resp = client.post('/api/auth/request-otp', json={'phone': phone})
        assert resp.status_code == 200, resp.get_json()
        resp = client.post('/api/auth/verify-otp', json={'phone': phone, 'otp': otp_sender.last_code(phone)})
        assert resp.status_code == 200, resp.get_json()
        return client
    return _login


@pytest.fixture
def admin_client(login):
    return login(PRIMARY_ADMIN_PHONE)


@pytest.fixture
def socket_client(app):
    """Open a Socket.IO connection sharing the cookies of an HTTP test client."""
    opened = []

    def _open(http_client):
        client = socketio.test_client(app, flask_test_client=http_client)
        opened.append(client)
        return client

    yield _open
    for client in opened:
        if client.is_connected():
            client.disconnect()


def envelopes(socket, event_type=None):
    """Typed envelopes received on the default 'message' event."""
    found = []
    for packet in socket.get_received():
        if packet['name'] != 'message':
            continue
        args = packet['args']
        # the test client hands back a bare payload for 'message' events
        payload = args[0] if isinstance(args, list) else args
        if event_type is None or payload.get('type') == event_type:
            found.append(payload)
    return found
