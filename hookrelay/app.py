# hookrelay/app.py
import logging
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import NotFound as RouteNotFound

from .errors import RelayError
from .ingest import ingest
from .openapi import OPENAPI_SPEC

logger = logging.getLogger(__name__)

bp = Blueprint("main", __name__)

# OPTIONS is left to Flask so CORS preflights are answered, not recorded
WEBHOOK_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"]


@bp.route("/health", methods=["GET"])
def health():
    return jsonify({
        "status": "ok",
        "service": "keyhook",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }), 200


@bp.route("/", methods=["GET"])
def index():
    return jsonify({
        "service": "KeyHook API",
        "version": "0.1.0",
        "description": "Webhook receiver for autonomous AI agents",
        "endpoints": {
            "hooks": "/hooks - Manage webhook endpoints (requires auth)",
            "webhook": "/webhook/:id - Receive incoming webhooks (public)",
        },
    }), 200


@bp.route("/openapi.json", methods=["GET"])
def openapi():
    return jsonify(OPENAPI_SPEC), 200


@bp.route("/webhook/<hook_id>", methods=WEBHOOK_METHODS)
def webhook(hook_id):
    # Always 200, even for unknown hooks or storage failures
    event_id = ingest(hook_id, request, current_app.extensions.get("credential_cache"))
    if event_id is None:
        return jsonify({"received": True}), 200
    return jsonify({"received": True, "event_id": event_id}), 200


def register_error_handlers(app) -> None:
    @app.errorhandler(RelayError)
    def handle_relay_error(err: RelayError):
        return jsonify({"error": err.message}), err.status_code

    @app.errorhandler(RouteNotFound)
    def handle_not_found(err):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    def handle_server_error(err):
        logger.error("Server error: %s", getattr(err, "original_exception", err))
        return jsonify({"error": "Internal server error"}), 500


if __name__ == "__main__":
    from . import create_app

    application = create_app()
    application.run(host="0.0.0.0", port=application.config["PORT"])
