import json

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.db import Base
from core.local_storage import LocalStorage
from core.subscription_router import SubscriptionRouter
from core.transport import OrderEventClient
from models.audit_log import AuditLog  # noqa: F401  (registers the table)
from models.local_state import LocalState  # noqa: F401


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)
    yield factory
    engine.dispose()


@pytest.fixture
def storage(session_factory):
    return LocalStorage(session_factory)


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class FakeSocket:
    """Stands in for socketio.Client; handlers run synchronously."""

    def __init__(self, fail=False, **options):
        self.options = options
        self.fail = fail
        self.handlers = {}
        self.connected = False
        self.emitted = []
        self.connect_calls = []

    def on(self, event, handler=None):
        self.handlers[event] = handler

    def connect(self, url, auth=None, transports=None):
        self.connect_calls.append({"url": url, "auth": auth, "transports": transports})
        if self.fail:
            raise ConnectionError("Connection refused")
        # python-socketio runs the connect handler before flagging the client connected
        self.handlers["connect"]()
        self.connected = True

    def emit(self, event, data=None):
        self.emitted.append((event, data))

    def disconnect(self):
        was_connected = self.connected
        self.connected = False
        if was_connected:
            self.handlers["disconnect"]("io client disconnect")

    def drop(self):
        self.connected = False
        self.handlers["disconnect"]("transport close")

    def reconnect(self):
        self.handlers["connect"]()
        self.connected = True

    def server_event(self, name, *args):
        self.handlers[name](*args)


class SocketFactory:
    def __init__(self):
        self.created = []
        self.fail = False

    def __call__(self, **options):
        sock = FakeSocket(fail=self.fail, **options)
        self.created.append(sock)
        return sock

    @property
    def last(self):
        return self.created[-1]


@pytest.fixture
def sockets():
    return SocketFactory()


@pytest.fixture
def router():
    return SubscriptionRouter()


@pytest.fixture
def client(router, sockets):
    return OrderEventClient(router=router, socket_factory=sockets)


class FakeResponse:
    def __init__(self, status_code=200, body=None, reason="OK"):
        self.status_code = status_code
        self._body = body
        self.reason = reason

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    @property
    def content(self):
        return b"" if self._body is None else json.dumps(self._body).encode()

    def json(self):
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body


class FakeHttpSession:
    """Records requests; replies from a queue of responses or exceptions."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "headers": headers, "timeout": timeout, **kwargs})
        reply = self.responses.pop(0) if self.responses else FakeResponse(200, [])
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def http():
    return FakeHttpSession()


def order_payload(order_id, status="pending", **extra):
    payload = {
        "id": order_id,
        "status": status,
        "items": [{"id": "i1", "name": "Paneer Tikka", "price": 100, "quantity": 2}],
        "restaurantId": "r1",
        "restaurantName": "Spice Route",
        "createdAt": "2026-10-01T12:00:00Z",
    }
    payload.update(extra)
    return payload
