# Overview: Retry helper for storage lock contention.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError

from ..extensions import db


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on lock contention.

    Retries on OperationalError (deadlocks, "database is locked"). The session
    is rolled back before each retry, so func must do all of its work inside
    one transaction and leave nothing behind when it fails.
    """
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Storage contention, retrying (attempt %s of %s)", attempt + 2, attempts
            )
            time.sleep(backoff_base * (2 ** attempt))
