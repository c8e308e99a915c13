# hookrelay/hooks.py
"""Hook registry: lifecycle of webhook endpoints, scoped to the owning token."""
import json
import logging
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .db import db
from .errors import Forbidden, NotFound, StorageFailure
from .models import DELIVERY_METHODS, DELIVERY_POLL, Hook
from .utils.ids import generate_hook_id

logger = logging.getLogger(__name__)

_CREATE_ATTEMPTS = 3


def create_hook(
    owner_token: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
    delivery_method: Optional[str] = None,
    delivery_config: Optional[Any] = None,
) -> Hook:
    method = delivery_method or DELIVERY_POLL
    if method not in DELIVERY_METHODS:
        logger.info("Unknown delivery_method %r, falling back to %s", method, DELIVERY_POLL)
        method = DELIVERY_POLL
    config = json.dumps(delivery_config) if isinstance(delivery_config, dict) and delivery_config else None

    for attempt in range(1, _CREATE_ATTEMPTS + 1):
        hook = Hook(
            id=generate_hook_id(),
            owner_token=owner_token,
            name=name or None,
            description=description or None,
            delivery_method=method,
            delivery_config=config,
            event_count=0,
        )
        try:
            db.session.add(hook)
            db.session.commit()
        except IntegrityError:
            # id collision, draw again
            db.session.rollback()
            logger.warning("Hook id collision on attempt %d", attempt)
            continue
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Failed to create hook")
            raise StorageFailure("Failed to create webhook endpoint")
        logger.info("Created hook %s (delivery=%s)", hook.id, hook.delivery_method)
        return hook

    raise StorageFailure("Failed to create webhook endpoint")


def list_hooks(owner_token: str) -> List[Hook]:
    try:
        stmt = (
            select(Hook)
            .where(Hook.owner_token == owner_token)
            .order_by(Hook.created_at.desc(), Hook.id)
        )
        return list(db.session.execute(stmt).scalars())
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to list hooks")
        raise StorageFailure("Failed to list webhooks")


def find_hook(hook_id: str) -> Optional[Hook]:
    """Unscoped lookup used by the public ingestion path."""
    return db.session.get(Hook, hook_id)


def get_hook(hook_id: str, owner_token: str, error_message: str = "Failed to get webhook") -> Hook:
    """
    Return the hook owned by ``owner_token``.

    Raises NotFound when no hook has this id and Forbidden when it belongs
    to another owner.
    """
    try:
        hook = find_hook(hook_id)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to load hook %s", hook_id)
        raise StorageFailure(error_message)

    if hook is None:
        raise NotFound("Webhook not found")
    if hook.owner_token != owner_token:
        raise Forbidden("Unauthorized")
    return hook


def delete_hook(hook_id: str, owner_token: str) -> None:
    """
    Delete a hook and, through the cascade, all of its events.

    Matching on id and owner together means another owner's hook reads as
    NotFound rather than Forbidden.
    """
    try:
        hook = db.session.execute(
            select(Hook).where(Hook.id == hook_id, Hook.owner_token == owner_token)
        ).scalar_one_or_none()
        if hook is None:
            raise NotFound("Webhook not found or unauthorized")
        db.session.delete(hook)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to delete hook %s", hook_id)
        raise StorageFailure("Failed to delete webhook")
    logger.info("Deleted hook %s", hook_id)
