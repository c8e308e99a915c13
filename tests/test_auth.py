from hookrelay.auth import UNAVAILABLE_ERROR, CredentialCache
from tests.conftest import OTHER, OWNER, FakeAuthority, FakeClock, bearer


def test_verify_valid_token_is_cached_within_window():
    authority = FakeAuthority()
    clock = FakeClock()
    cache = CredentialCache(authority, ttl_seconds=60, clock=clock)

    first = cache.verify(OWNER, "webhook_access")
    clock.advance(59)
    second = cache.verify(OWNER, "webhook_access")

    assert first.valid is True
    assert first.user_id == f"user-{OWNER}"
    assert first.credits == 10
    assert second == first
    assert len(authority.verify_calls) == 1
    cache.shutdown()


def test_cached_entry_expires_after_window():
    authority = FakeAuthority()
    clock = FakeClock()
    cache = CredentialCache(authority, ttl_seconds=60, clock=clock)

    cache.verify(OWNER)
    clock.advance(60)
    cache.verify(OWNER)

    assert len(authority.verify_calls) == 2
    cache.shutdown()


def test_invalid_token_is_never_cached():
    authority = FakeAuthority()
    cache = CredentialCache(authority, clock=FakeClock())

    for _ in range(3):
        result = cache.verify("tok_bad")
        assert result.valid is False
        assert result.error == "Invalid or expired token"

    assert len(authority.verify_calls) == 3
    cache.shutdown()


def test_transport_failure_returns_unavailable_instead_of_raising():
    authority = FakeAuthority()
    authority.fail_transport = True
    cache = CredentialCache(authority, clock=FakeClock())

    result = cache.verify(OWNER)

    assert result.valid is False
    assert result.error == UNAVAILABLE_ERROR

    # the failure wasn't cached either
    authority.fail_transport = False
    assert cache.verify(OWNER).valid is True
    cache.shutdown()


def test_empty_token_skips_authority():
    authority = FakeAuthority()
    cache = CredentialCache(authority)

    result = cache.verify("")

    assert result.valid is False
    assert result.error == "No token provided"
    assert authority.verify_calls == []
    cache.shutdown()


def test_cache_is_bounded():
    authority = FakeAuthority(valid_tokens=("a", "b", "c"))
    cache = CredentialCache(authority, max_entries=2, clock=FakeClock())

    cache.verify("a")
    cache.verify("b")
    cache.verify("c")
    cache.verify("a")

    # "a" was evicted as the oldest entry and had to be verified again
    assert [call[0] for call in authority.verify_calls] == ["a", "b", "c", "a"]
    cache.shutdown()


def test_report_usage_runs_in_background():
    authority = FakeAuthority()
    cache = CredentialCache(authority)
    records = [{"token": OWNER, "operation": "webhook_received", "quantity": 1}]

    future = cache.report_usage(records)

    assert future.result(timeout=5) is True
    assert authority.usage_batches == [records]
    cache.shutdown()


def test_report_usage_failure_is_swallowed():
    authority = FakeAuthority()
    authority.fail_usage = True
    cache = CredentialCache(authority)

    future = cache.report_usage([{"token": OWNER, "operation": "webhook_received", "quantity": 1}])

    assert future.result(timeout=5) is False
    assert cache.report_usage([]) is None
    cache.shutdown()


def test_hooks_routes_require_bearer_header(client):
    resp = client.get("/hooks")

    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Missing or invalid Authorization header"}


def test_hooks_routes_reject_invalid_token(client):
    resp = client.get("/hooks", headers=bearer("tok_bad"))

    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Invalid or expired token"}


def test_authority_outage_is_an_auth_failure(client, authority):
    authority.fail_transport = True

    resp = client.post("/hooks", json={}, headers=bearer(OTHER))

    assert resp.status_code == 401
    assert resp.get_json() == {"error": UNAVAILABLE_ERROR}


def test_control_plane_verifies_with_access_operation(client, authority):
    client.get("/hooks", headers=bearer())
    client.get("/hooks", headers=bearer())

    assert authority.verify_calls == [(OWNER, "webhook_access", 1)]


class _Response:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code
        self.ok = status_code < 400
        self.text = str(payload)

    def json(self):
        return self._payload


def test_keykeeper_client_posts_verify_request(monkeypatch):
    from hookrelay.utils import keykeeper

    sent = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        sent.update(url=url, json=json, headers=headers, timeout=timeout)
        return _Response({"valid": True, "user_id": "u1"})

    monkeypatch.setattr(keykeeper.requests, "post", fake_post)
    client = keykeeper.KeyKeeperClient("https://authority.test/api/", "s3cret")

    assert client.verify("tok", "webhook_access") == {"valid": True, "user_id": "u1"}
    assert sent["url"] == "https://authority.test/api/v1/services/verify"
    assert sent["json"] == {"token": "tok", "service": "keyhook", "operation": "webhook_access", "quantity": 1}
    assert sent["headers"]["X-Service-Secret"] == "s3cret"


def test_keykeeper_client_reports_usage(monkeypatch):
    from hookrelay.utils import keykeeper

    sent = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        sent.update(url=url, json=json)
        return _Response({"error": "nope"}, status_code=502)

    monkeypatch.setattr(keykeeper.requests, "post", fake_post)
    client = keykeeper.KeyKeeperClient("https://authority.test/api")
    records = [{"token": "tok", "operation": "webhook_received", "quantity": 1}]

    assert client.report_usage(records) is False
    assert sent["url"] == "https://authority.test/api/v1/services/usage"
    assert sent["json"] == {"service": "keyhook", "records": records}
