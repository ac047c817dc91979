# Overview: Write helpers for rows that several requests may touch at once (snapshot upserts).

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


# "database is locked", deadlock victims, stale optimistic versions
TRANSIENT_ERRORS = (OperationalError, StaleDataError)


def first_for_update(query):
    """First row of `query`, locked until commit where the backend supports it."""
    return query.with_for_update().first()


def write_with_retry(write, *, label: str, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run `write` and commit, retrying transient lock failures.

    The session is rolled back before each retry. The last transient error
    is re-raised once `attempts` are used up; other errors propagate at once.
    """
    for attempt in range(1, attempts + 1):
        try:
            result = write()
            db.session.commit()
            return result
        except TRANSIENT_ERRORS as exc:
            db.session.rollback()
            if attempt == attempts:
                current_app.logger.error("%s failed after %s attempts: %s", label, attempts, exc)
                raise
            current_app.logger.warning("%s hit a transient error (attempt %s/%s): %s",
                                       label, attempt, attempts, exc)
            time.sleep(backoff_base * (2 ** (attempt - 1)))
