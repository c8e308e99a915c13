# hookrelay/models.py
import json

from .db import db, isoformat, utcnow
from .utils.ids import generate_event_id, generate_hook_id

DELIVERY_POLL = "poll"
DELIVERY_NOSTR = "nostr"
DELIVERY_EMAIL = "email"
DELIVERY_METHODS = (DELIVERY_POLL, DELIVERY_NOSTR, DELIVERY_EMAIL)


def _loads(value):
    return json.loads(value) if value else None


class Hook(db.Model):
    __tablename__ = "hooks"

    id = db.Column(db.String(12), primary_key=True, default=generate_hook_id)
    owner_token = db.Column(db.String(512), nullable=False, index=True)
    name = db.Column(db.Text, nullable=True)
    description = db.Column(db.Text, nullable=True)
    delivery_method = db.Column(db.String(16), nullable=False, default=DELIVERY_POLL)
    delivery_config = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    last_triggered_at = db.Column(db.DateTime, nullable=True)
    event_count = db.Column(db.Integer, default=0, nullable=False)

    events = db.relationship(
        "Event",
        back_populates="hook",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def webhook_url(self, base_url: str) -> str:
        return f"{base_url.rstrip('/')}/webhook/{self.id}"

    def to_dict(self, base_url: str, include_config: bool = False) -> dict:
        data = {
            "id": self.id,
            "webhook_url": self.webhook_url(base_url),
            "name": self.name,
            "description": self.description,
            "delivery_method": self.delivery_method,
            "created_at": isoformat(self.created_at),
            "last_triggered_at": isoformat(self.last_triggered_at),
            "event_count": self.event_count or 0,
        }
        if include_config:
            data["delivery_config"] = _loads(self.delivery_config)
        return data

    def __repr__(self):
        return f"<Hook id={self.id} method={self.delivery_method} events={self.event_count}>"


class Event(db.Model):
    __tablename__ = "events"

    id = db.Column(db.String(16), primary_key=True, default=generate_event_id)
    hook_id = db.Column(
        db.String(12),
        db.ForeignKey("hooks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    method = db.Column(db.String(16), nullable=False)
    headers = db.Column(db.Text, nullable=False)
    body = db.Column(db.Text, nullable=True)
    query_params = db.Column(db.Text, nullable=True)
    source_ip = db.Column(db.String(64), nullable=True)
    received_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    delivered_at = db.Column(db.DateTime, nullable=True)

    hook = db.relationship("Hook", back_populates="events")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "method": self.method,
            "headers": _loads(self.headers) or {},
            "body": _parse_body(self.body),
            "query_params": _loads(self.query_params),
            "source_ip": self.source_ip,
            "received_at": isoformat(self.received_at),
            "delivered_at": isoformat(self.delivered_at),
        }

    def __repr__(self):
        return f"<Event id={self.id} hook={self.hook_id} method={self.method}>"


def _parse_body(body):
    if not body:
        return None
    try:
        return json.loads(body)
    except ValueError:
        return body
