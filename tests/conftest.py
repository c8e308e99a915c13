import pytest
import requests

from hookrelay import create_app
from hookrelay.db import db

OWNER = "tok_owner"
OTHER = "tok_other"


class FakeAuthority:
    """In-process stand-in for the credential authority."""

    def __init__(self, valid_tokens=(OWNER, OTHER)):
        self.valid_tokens = set(valid_tokens)
        self.verify_calls = []
        self.usage_batches = []
        self.fail_transport = False
        self.fail_usage = False

    def verify(self, token, operation, quantity=1):
        self.verify_calls.append((token, operation, quantity))
        if self.fail_transport:
            raise requests.ConnectionError("authority down")
        if token in self.valid_tokens:
            return {"valid": True, "user_id": f"user-{token}", "email": f"{token}@example.com", "credits": 10}
        return {"valid": False, "error": "Invalid or expired token"}

    def report_usage(self, records):
        if self.fail_usage:
            raise requests.ConnectionError("authority down")
        self.usage_batches.append(records)
        return True


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def authority():
    return FakeAuthority()


@pytest.fixture
def app(tmp_path, authority):
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
            "PUBLIC_URL": "https://relay.test",
            "REAPER_ENABLED": False,
        },
        authority=authority,
    )
    yield app
    app.extensions["credential_cache"].shutdown()
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


def bearer(token=OWNER):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_hook(client):
    def _make(token=OWNER, **body):
        resp = client.post("/hooks", json=body, headers=bearer(token))
        assert resp.status_code == 201
        return resp.get_json()
    return _make
