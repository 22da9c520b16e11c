# Overview: Service-layer operations for concurrency; per-owner write serialization and retry.

from __future__ import annotations

import logging
import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import NotFoundError, StoreError
from ..models import User

"""
CasaStock write model (authoritative)

- Every ledger/stock mutation runs as one transaction: read, validate, write, commit.
- Mutations of one owner are serialized by locking that owner's users row.
- On SQLite (which ignores FOR UPDATE) the transaction is opened with
  BEGIN IMMEDIATE, taking the database write lock before the first read.
- Any exception rolls the session back, so no partial state survives.
"""

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def acquire_owner_lock(owner_id: int) -> User:
    """
    Begin the owner's write transaction and lock the owner row.

    Must be the first statement of the unit of work so that every
    subsequent read observes the state left by the previous writer.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))
    owner = lock_for_update(db.session.query(User).filter_by(id=owner_id)).first()
    if owner is None:
        raise NotFoundError("Owner not found")
    return owner


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB unit of work with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Every failure rolls the session back;
    persistence errors that survive the retries surface as StoreError.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                logger.error("Unit of work failed after %s attempts: %s", attempts, exc)
                raise StoreError("Database is busy, please retry") from exc
            logger.warning("Retrying unit of work after concurrency failure (attempt %s): %s", attempt + 1, exc)
            time.sleep(backoff_base * (2 ** attempt))
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Unit of work failed")
            raise StoreError("Database error") from exc
        except Exception:
            db.session.rollback()
            raise
