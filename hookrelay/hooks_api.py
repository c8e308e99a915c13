# hookrelay/hooks_api.py
"""
Control-plane API for webhook endpoints.

Endpoints (all require ``Authorization: Bearer <token>``):
    POST   /hooks              - Create a webhook endpoint
    GET    /hooks              - List the caller's endpoints
    GET    /hooks/<id>         - Endpoint details
    DELETE /hooks/<id>         - Delete an endpoint and its events
    GET    /hooks/<id>/events  - Poll captured events
"""
import logging

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from . import events, hooks
from .auth import authenticate_request, get_auth
from .db import db, isoformat
from .errors import StorageFailure

logger = logging.getLogger(__name__)

bp = Blueprint("hooks", __name__, url_prefix="/hooks")
bp.before_request(authenticate_request)


def _public_url() -> str:
    return current_app.config["PUBLIC_URL"]


def _text_or_none(value):
    return value if isinstance(value, str) and value else None


@bp.route("", methods=["POST"])
def create_hook():
    auth = get_auth()
    body = request.get_json(force=True, silent=True)
    if not isinstance(body, dict):
        body = {}

    hook = hooks.create_hook(
        auth.token,
        name=_text_or_none(body.get("name")),
        description=_text_or_none(body.get("description")),
        delivery_method=_text_or_none(body.get("delivery_method")),
        delivery_config=body.get("delivery_config"),
    )
    data = hook.to_dict(_public_url())
    return jsonify({
        "id": data["id"],
        "webhook_url": data["webhook_url"],
        "name": data["name"],
        "description": data["description"],
        "delivery_method": data["delivery_method"],
        "created_at": data["created_at"],
    }), 201


@bp.route("", methods=["GET"])
def list_hooks():
    auth = get_auth()
    base = _public_url()
    return jsonify({"hooks": [hook.to_dict(base) for hook in hooks.list_hooks(auth.token)]}), 200


@bp.route("/<hook_id>", methods=["GET"])
def get_hook(hook_id):
    auth = get_auth()
    hook = hooks.get_hook(hook_id, auth.token)
    return jsonify(hook.to_dict(_public_url(), include_config=True)), 200


@bp.route("/<hook_id>", methods=["DELETE"])
def delete_hook(hook_id):
    auth = get_auth()
    hooks.delete_hook(hook_id, auth.token)
    return jsonify({"success": True, "message": "Webhook deleted"}), 200


@bp.route("/<hook_id>/events", methods=["GET"])
def get_events(hook_id):
    auth = get_auth()
    limit = events.clamp_limit(request.args.get("limit", events.DEFAULT_LIMIT))
    undelivered_only = request.args.get("undelivered") == "true"
    mark_delivered = request.args.get("mark_delivered") != "false"

    hooks.get_hook(hook_id, auth.token, error_message="Failed to get events")

    try:
        found = events.list_events(hook_id, limit=limit, undelivered_only=undelivered_only)
        # render before marking: the commit expires every loaded row
        payload = [event.to_dict() for event in found]
        if mark_delivered:
            pending = [item["id"] for item in payload if item["delivered_at"] is None]
            delivered_at = isoformat(events.mark_all_delivered(pending))
            for item in payload:
                if item["delivered_at"] is None:
                    item["delivered_at"] = delivered_at
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to get events for hook %s", hook_id)
        raise StorageFailure("Failed to get events")

    return jsonify({
        "events": payload,
        "count": len(payload),
        "has_more": len(payload) == limit,
    }), 200
