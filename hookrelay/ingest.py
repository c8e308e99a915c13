# hookrelay/ingest.py
"""
Public ingestion path.

Every stage logs and swallows its own failures: the HTTP response for
/webhook/<id> is always 200 so that hook ids can't be enumerated and
senders don't start retry storms.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from flask import Request

from . import delivery, events, hooks
from .db import db
from .models import DELIVERY_POLL, Event
from .utils.ids import generate_event_id

logger = logging.getLogger(__name__)

# Headers never stored (sensitive, or carrying the caller's address)
EXCLUDED_HEADERS = frozenset([
    "cookie",
    "authorization",
    "x-forwarded-for",
    "x-real-ip",
    "cf-connecting-ip",
])

BODY_METHODS = frozenset(["POST", "PUT", "PATCH"])

MAX_BODY_SIZE = 100 * 1024
PREVIEW_LENGTH = 1000

USAGE_OPERATION = "webhook_received"


@dataclass
class CapturedRequest:
    method: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None
    query_params: Optional[Dict[str, str]] = None
    source_ip: Optional[str] = None

    def summary(self) -> Dict[str, Any]:
        return {
            "method": self.method,
            "headers": self.headers,
            "body": self.body,
            "query_params": self.query_params,
            "source_ip": self.source_ip,
        }


def filter_headers(headers) -> Dict[str, str]:
    return {
        name.lower(): value
        for name, value in headers.items()
        if name.lower() not in EXCLUDED_HEADERS
    }


def parse_query(args) -> Optional[Dict[str, str]]:
    # repeated keys keep the last value; no params at all is None, not {}
    params = {key: value for key, value in args.items(multi=True)}
    return params or None


def limit_body(raw: bytes) -> str:
    text = raw.decode("utf-8", errors="replace")
    if len(raw) <= MAX_BODY_SIZE:
        return text
    return json.dumps({
        "_truncated": True,
        "_original_size": len(raw),
        "_preview": text[:PREVIEW_LENGTH],
    })


def read_body(req: Request) -> Optional[str]:
    if req.method not in BODY_METHODS:
        return None
    try:
        raw = req.get_data(cache=True)
    except Exception:
        logger.debug("Could not read request body", exc_info=True)
        return None
    return limit_body(raw)


def resolve_source_ip(headers) -> Optional[str]:
    forwarded = headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return headers.get("X-Real-IP") or headers.get("CF-Connecting-IP") or None


def capture_request(req: Request) -> CapturedRequest:
    return CapturedRequest(
        method=req.method,
        headers=filter_headers(req.headers),
        body=read_body(req),
        query_params=parse_query(req.args),
        source_ip=resolve_source_ip(req.headers),
    )


def ingest(hook_id: str, req: Request, credential_cache=None) -> Optional[str]:
    """
    Record the request against ``hook_id``.

    Returns the new event id, or None when the hook is unknown or anything
    failed along the way. Never raises.
    """
    try:
        hook = hooks.find_hook(hook_id)
        if hook is None:
            logger.debug("Webhook for unknown hook %s ignored", hook_id)
            return None

        owner_token = hook.owner_token
        delivery_method = hook.delivery_method
        delivery_config = hook.delivery_config

        captured = capture_request(req)
        event_id = generate_event_id()
        events.append_event(Event(
            id=event_id,
            hook_id=hook_id,
            method=captured.method,
            headers=json.dumps(captured.headers),
            body=captured.body,
            query_params=json.dumps(captured.query_params) if captured.query_params else None,
            source_ip=captured.source_ip,
        ))
    except Exception:
        db.session.rollback()
        logger.exception("Webhook processing error for hook %s", hook_id)
        return None

    logger.info("Stored event %s for hook %s (%s)", event_id, hook_id, captured.method)

    if delivery_method != DELIVERY_POLL and delivery_config:
        delivery.deliver_event(hook_id, delivery_method, delivery_config, event_id, captured.summary())

    if credential_cache is not None:
        try:
            credential_cache.report_usage([
                {"token": owner_token, "operation": USAGE_OPERATION, "quantity": 1},
            ])
        except Exception:
            logger.exception("Failed to queue usage report for hook %s", hook_id)

    return event_id
