import re
from datetime import timedelta

from hookrelay.db import db
from hookrelay.models import Event, Hook
from tests.conftest import OTHER, OWNER, bearer


def test_create_hook_defaults_to_poll(client):
    resp = client.post("/hooks", json={"name": "github-events"}, headers=bearer())

    assert resp.status_code == 201
    data = resp.get_json()
    assert re.fullmatch(r"[A-Za-z0-9_-]{12}", data["id"])
    assert data["webhook_url"] == f"https://relay.test/webhook/{data['id']}"
    assert data["name"] == "github-events"
    assert data["description"] is None
    assert data["delivery_method"] == "poll"
    assert data["created_at"].endswith("Z")


def test_create_hook_ids_are_unique(make_hook):
    ids = {make_hook()["id"] for _ in range(20)}

    assert len(ids) == 20


def test_create_hook_is_lenient_with_bad_bodies(client):
    resp = client.post("/hooks", data="not json", headers=bearer())
    assert resp.status_code == 201
    assert resp.get_json()["delivery_method"] == "poll"

    resp = client.post("/hooks", json=["a", "list"], headers=bearer())
    assert resp.status_code == 201

    resp = client.post("/hooks", json={"delivery_method": "carrier-pigeon"}, headers=bearer())
    assert resp.get_json()["delivery_method"] == "poll"


def test_create_hook_stores_delivery_config(client, app):
    resp = client.post(
        "/hooks",
        json={"delivery_method": "email", "delivery_config": {"email": "agent@example.com"}},
        headers=bearer(),
    )
    hook_id = resp.get_json()["id"]

    detail = client.get(f"/hooks/{hook_id}", headers=bearer()).get_json()
    assert detail["delivery_method"] == "email"
    assert detail["delivery_config"] == {"email": "agent@example.com"}

    with app.app_context():
        assert db.session.get(Hook, hook_id).owner_token == OWNER


def test_list_hooks_only_returns_own_hooks_newest_first(client, make_hook, app):
    first = make_hook(name="first")
    second = make_hook(name="second")
    make_hook(token=OTHER, name="theirs")

    # backdate the first hook so ordering doesn't hinge on clock resolution
    with app.app_context():
        hook = db.session.get(Hook, first["id"])
        hook.created_at = hook.created_at - timedelta(days=1)
        db.session.commit()

    resp = client.get("/hooks", headers=bearer())

    assert resp.status_code == 200
    hooks = resp.get_json()["hooks"]
    assert [h["id"] for h in hooks] == [second["id"], first["id"]]
    assert hooks[0]["event_count"] == 0
    assert hooks[0]["last_triggered_at"] is None
    assert "delivery_config" not in hooks[0]
    assert "owner_token" not in hooks[0]


def test_get_hook_of_other_owner_is_forbidden(client, make_hook):
    hook = make_hook()

    resp = client.get(f"/hooks/{hook['id']}", headers=bearer(OTHER))

    assert resp.status_code == 403
    assert resp.get_json() == {"error": "Unauthorized"}


def test_get_unknown_hook_is_not_found(client):
    resp = client.get("/hooks/doesnotexist", headers=bearer())

    assert resp.status_code == 404
    assert resp.get_json() == {"error": "Webhook not found"}


def test_delete_by_other_owner_looks_like_not_found(client, make_hook, app):
    hook = make_hook()

    resp = client.delete(f"/hooks/{hook['id']}", headers=bearer(OTHER))

    assert resp.status_code == 404
    assert resp.get_json() == {"error": "Webhook not found or unauthorized"}
    with app.app_context():
        assert db.session.get(Hook, hook["id"]) is not None


def test_delete_hook_cascades_to_events(client, make_hook, app):
    hook = make_hook()
    client.post(f"/webhook/{hook['id']}", json={"n": 1})
    client.post(f"/webhook/{hook['id']}", json={"n": 2})

    resp = client.delete(f"/hooks/{hook['id']}", headers=bearer())

    assert resp.status_code == 200
    assert resp.get_json() == {"success": True, "message": "Webhook deleted"}
    with app.app_context():
        assert db.session.get(Hook, hook["id"]) is None
        assert db.session.query(Event).filter_by(hook_id=hook["id"]).count() == 0

    assert client.delete(f"/hooks/{hook['id']}", headers=bearer()).status_code == 404


def test_events_of_other_owner_are_forbidden(client, make_hook):
    hook = make_hook()

    assert client.get(f"/hooks/{hook['id']}/events", headers=bearer(OTHER)).status_code == 403
    assert client.get("/hooks/nope/events", headers=bearer()).status_code == 404


def test_storage_failure_is_a_generic_500(client, monkeypatch):
    from sqlalchemy.exc import OperationalError

    from hookrelay import hooks

    def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(hooks, "select", broken)

    resp = client.get("/hooks", headers=bearer())

    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Failed to list webhooks"}
