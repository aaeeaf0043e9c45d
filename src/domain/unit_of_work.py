"""Transaction scope shared by the match and season services."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from domain.errors import ConflictError, KickerError, PersistenceError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the ``DateTime(timezone=False)`` columns."""
    return datetime.now(UTC).replace(tzinfo=None)


@contextmanager
def transaction(session_factory: sessionmaker[Session], *, action: str) -> Iterator[Session]:
    """Run one operation in one database transaction.

    Everything written inside the block is committed together or rolled back
    together. Driver errors surface as ``ConflictError`` (lost race against a
    constraint or a concurrent rating update) or ``PersistenceError``.
    """
    try:
        with session_factory() as session, session.begin():
            yield session
    except KickerError:
        raise
    except StaleDataError as exc:
        logger.warning("%s rejected: concurrent rating update (%s)", action, exc)
        raise ConflictError(
            f"Could not {action}: player ratings were changed concurrently, reload and retry"
        ) from exc
    except IntegrityError as exc:
        logger.warning("%s rejected by a database constraint: %s", action, exc.orig)
        raise ConflictError(
            f"Could not {action}: the change conflicts with a concurrent update, reload and retry"
        ) from exc
    except SQLAlchemyError as exc:
        logger.error("%s failed in the database: %s", action, exc)
        raise PersistenceError(f"Could not {action}: the database rejected the operation") from exc


__all__ = ["transaction", "utcnow"]
