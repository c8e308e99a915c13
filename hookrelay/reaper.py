# hookrelay/reaper.py
import logging
import threading

import click
from flask import Flask, current_app
from flask.cli import with_appcontext
from sqlalchemy.exc import SQLAlchemyError

from . import events
from .db import db

logger = logging.getLogger(__name__)


class RetentionReaper:
    """Deletes events past the retention window on a fixed interval."""

    def __init__(self, app: Flask, interval_seconds: float = 3600):
        self.app = app
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread = None

    def run_once(self) -> int:
        with self.app.app_context():
            try:
                deleted = events.purge_older_than(events.RETENTION_WINDOW)
            except SQLAlchemyError:
                db.session.rollback()
                logger.exception("Retention sweep failed, retrying next interval")
                return 0
        if deleted > 0:
            logger.info("Cleaned up %d old events", deleted)
        return deleted

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.run_once()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="retention-reaper", daemon=True)
        self._thread.start()
        logger.info("Retention reaper started (every %ss)", self.interval_seconds)

    def stop(self, timeout: float = 5) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


@click.command("purge-events")
@with_appcontext
def purge_events_command():
    """Delete events older than the retention window."""
    deleted = current_app.extensions["retention_reaper"].run_once()
    click.echo(f"Deleted {deleted} events")
