import base64
from datetime import date

import cv2
import numpy as np
import pytest

from database import create_session_factory
from local_store import LocalStore
from publisher import PendingEnrollment, PublisherSession
from relay import Channel, RelayServer
from subscriber import SubscriberMirror


class FakeChannel(Channel):
    """Collects everything the relay delivers to it."""

    def __init__(self, channel_id=None):
        super().__init__(channel_id)
        self.received = []

    def deliver(self, message):
        self.received.append(message)


class SessionChannel(FakeChannel):
    """Hands relay output straight to a publisher or subscriber session."""

    def __init__(self, channel_id=None):
        super().__init__(channel_id)
        self.session = None

    def deliver(self, message):
        super().deliver(message)
        if self.session is not None:
            self.session.apply_update(message)


@pytest.fixture
def relay():
    return RelayServer()


@pytest.fixture
def make_channel(relay):
    def _make(channel_id=None, connect=True):
        channel = FakeChannel(channel_id)
        if connect:
            relay.connect(channel)
        return channel
    return _make


@pytest.fixture
def store(tmp_path):
    return LocalStore(create_session_factory(f"sqlite:///{tmp_path / 'kiosk.db'}"))


@pytest.fixture
def today():
    return date(2024, 1, 29)


@pytest.fixture
def connect_publisher(relay, today):
    """Publisher session wired through the in-process relay."""
    def _connect(channel_id="admin"):
        channel = SessionChannel(channel_id)
        relay.connect(channel)
        session = PublisherSession(lambda m: relay.handle_raw(channel, m), today=lambda: today)
        channel.session = session
        session.start()
        return session, channel
    return _connect


@pytest.fixture
def connect_subscriber(relay, store):
    """Kiosk mirror wired through the in-process relay."""
    def _connect(channel_id="kiosk", share_attendance=True, local_store=None):
        channel = SessionChannel(channel_id)
        relay.connect(channel)
        mirror = SubscriberMirror(
            lambda m: relay.handle_raw(channel, m),
            local_store or store,
            share_attendance=share_attendance,
        )
        channel.session = mirror
        mirror.boot()
        return mirror, channel
    return _connect


@pytest.fixture
def frame():
    """A tiny JPEG frame as a data URL, like a browser canvas capture."""
    img = np.full((16, 16, 3), 127, dtype=np.uint8)
    ok, buffer = cv2.imencode('.jpg', img)
    assert ok
    return "data:image/jpeg;base64," + base64.b64encode(buffer.tobytes()).decode("ascii")


@pytest.fixture
def enroll():
    def _enroll(session, name, department="Engineering", email=""):
        session.begin_enrollment(PendingEnrollment(name=name, department=department, email=email))
        return session.complete_enrollment('{"images": ["x"], "captureCount": 3}')
    return _enroll
