# Overview: Typed startup state for the storage connection.

"""
The application is only usable once its storage round-trip succeeds.

create_app() records the outcome as a ReadyState on app.extensions so
request handling and the health endpoint read one value instead of
scattered connection flags. While the state is not READY, each request
and each health check probes again, so a storage outage at startup clears
without a restart.
"""

from __future__ import annotations

import enum

from flask import Flask, current_app
from sqlalchemy import text

from .extensions import db

EXTENSION_KEY = "stockroom.ready_state"


class ReadyState(str, enum.Enum):
    STARTING = "starting"
    READY = "ready"
    FAILED = "failed"


def set_state(app: Flask, state: ReadyState) -> None:
    app.extensions[EXTENSION_KEY] = state


def get_state(app: Flask | None = None) -> ReadyState:
    app = app or current_app
    return app.extensions.get(EXTENSION_KEY, ReadyState.STARTING)


def ensure_ready(app: Flask) -> ReadyState:
    """READY stays READY; any other state probes storage again."""
    state = get_state(app)
    if state is ReadyState.READY:
        return state
    return initialize(app)


def initialize(app: Flask) -> ReadyState:
    """Probe storage once and move STARTING -> READY or FAILED."""
    set_state(app, ReadyState.STARTING)
    with app.app_context():
        try:
            db.session.execute(text("SELECT 1"))
            db.session.rollback()
        except Exception:
            app.logger.exception("Storage probe failed; application not ready")
            set_state(app, ReadyState.FAILED)
            return ReadyState.FAILED
    set_state(app, ReadyState.READY)
    app.logger.info("Storage reachable; application ready")
    return ReadyState.READY
