# hookrelay/__init__.py
import logging

from flask import Flask
from flask_cors import CORS

from .config import Config
from .db import db, init_db, migrate  # noqa: F401


def create_app(test_config=None, authority=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.from_mapping(test_config)

    CORS(
        app,
        origins="*",
        send_wildcard=True,
        methods=app.config["CORS_METHODS"],
        allow_headers=app.config["CORS_ALLOW_HEADERS"],
    )

    logging.basicConfig(level=getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO))

    # Initialize database
    init_db(app)

    from .auth import CredentialCache
    from .utils.keykeeper import KeyKeeperClient

    if authority is None:
        authority = KeyKeeperClient(app.config["KEYKEEPER_API"], app.config["SERVICE_SECRET"])
    app.extensions["credential_cache"] = CredentialCache(authority, ttl_seconds=app.config["TOKEN_CACHE_TTL"])

    from .reaper import RetentionReaper, purge_events_command

    reaper = RetentionReaper(app, interval_seconds=app.config["REAPER_INTERVAL_SECONDS"])
    app.extensions["retention_reaper"] = reaper
    app.cli.add_command(purge_events_command)

    # Register blueprints
    from .app import bp as main_bp, register_error_handlers
    from .hooks_api import bp as hooks_bp
    app.register_blueprint(main_bp)
    app.register_blueprint(hooks_bp)
    register_error_handlers(app)

    if app.config["REAPER_ENABLED"]:
        reaper.start()

    return app
