# File: tests/conftest.py
# Shared fixtures: a controllable clock, memory and SQLite-backed stores,
# and a Flask app wired to them.

import json
import time
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import sessionmaker

from rhodesign import create_app
from rhodesign.api.auth import sign_payload
from rhodesign.api.ratelimit import limiter
from rhodesign.config import Settings
from rhodesign.core.storage import MemoryStorage
from rhodesign.core.store import SigningSessionStore
from rhodesign.db.models import Base
from rhodesign.db.session import make_engine
from rhodesign.db.storage import SqlStorage
from rhodesign.integrations.notifier import Notifier

API_SECRET = "test-api-secret"
WEBHOOK_SECRET = "test-webhook-secret"


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingNotifier(Notifier):
    def __init__(self):
        super().__init__(webhook_url="", disabled=True)
        self.messages = []

    def send(self, message):
        self.messages.append(message)
        return True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def store(memory_storage, clock):
    return SigningSessionStore(memory_storage, clock=clock)


@pytest.fixture
def sql_storage():
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield SqlStorage(sessionmaker(autocommit=False, autoflush=False, bind=engine))
    engine.dispose()


@pytest.fixture
def sql_store(sql_storage, clock):
    return SigningSessionStore(sql_storage, clock=clock)


@pytest.fixture
def settings():
    return Settings(
        signing_store="memory",
        signing_api_secret=API_SECRET,
        webhook_secret=WEBHOOK_SECRET,
        public_base_url="https://sign.example.com",
    )


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def app(settings, store, notifier):
    app = create_app(settings=settings, store=store, notifier=notifier)
    app.config.update(TESTING=True)
    limiter.reset()
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def hmac_headers(body: str = "", secret: str = API_SECRET, timestamp: str | None = None) -> dict:
    timestamp = timestamp or str(int(time.time()))
    return {
        "X-Timestamp": timestamp,
        "X-Signature": sign_payload(secret, timestamp, body),
    }


def signed_post(client, path, payload, **headers):
    body = json.dumps(payload)
    return client.post(
        path,
        data=body,
        content_type="application/json",
        headers={**hmac_headers(body), **headers},
    )


def signed_get(client, path):
    return client.get(path, headers=hmac_headers(""))
