# hookrelay/delivery.py
"""
Push delivery for hooks that aren't polled.

Nostr and email channels only log their intent for now. Whatever the
channel does, the event is marked delivered once dispatch was attempted.
"""
import json
import logging
from typing import Any, Callable, Dict, Optional

from . import events
from .db import db
from .models import DELIVERY_EMAIL, DELIVERY_NOSTR, DELIVERY_POLL

logger = logging.getLogger(__name__)


def _send_nostr(event_id: str, config: Dict[str, Any], payload: Dict[str, Any]) -> None:
    # TODO: sign and publish an encrypted DM once a relay signing key is provisioned
    logger.info(
        "[Nostr delivery] Event %s to %s via %s",
        event_id,
        config.get("nostr_pubkey"),
        config.get("nostr_relay") or "default relay",
    )


def _send_email(event_id: str, config: Dict[str, Any], payload: Dict[str, Any]) -> None:
    logger.info("[Email delivery] Event %s to %s", event_id, config.get("email"))


CHANNELS: Dict[str, Callable[[str, Dict[str, Any], Dict[str, Any]], None]] = {
    DELIVERY_NOSTR: _send_nostr,
    DELIVERY_EMAIL: _send_email,
}


def _parse_config(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    try:
        config = json.loads(raw) if raw else None
    except ValueError:
        return None
    return config if isinstance(config, dict) else None


def deliver_event(
    hook_id: str,
    delivery_method: str,
    delivery_config: Optional[str],
    event_id: str,
    payload: Dict[str, Any],
) -> bool:
    """
    Dispatch an event through the hook's channel.

    Takes the hook's delivery settings as plain values so nothing here has
    to reload the hook. Returns True when a send was attempted and the
    event marked delivered. Never raises.
    """
    if delivery_method == DELIVERY_POLL or not delivery_config:
        return False

    config = _parse_config(delivery_config)
    if config is None:
        logger.error("Unusable delivery_config on hook %s, event %s left for polling", hook_id, event_id)
        return False

    send = CHANNELS.get(delivery_method)
    if send is None:
        logger.warning("No channel for delivery method %r on hook %s", delivery_method, hook_id)
        return False

    try:
        send(event_id, config, payload)
    except Exception:
        logger.exception("Failed to deliver event %s via %s", event_id, delivery_method)

    # attempted is enough: the event counts as handed to the delivery path
    try:
        events.mark_delivered(event_id)
    except Exception:
        db.session.rollback()
        logger.exception("Failed to mark event %s delivered", event_id)
        return False
    return True
