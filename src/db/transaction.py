"""Unit-of-work boundary for repository writes."""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from core.exceptions import PersistenceError


@contextmanager
def transaction(session: Session, description: str = "database write") -> Generator[Session]:
    """Commit the block's changes together or roll all of them back.

    Archiving relies on this: the history insert and the live-row delete
    land in one commit. Driver-level failures (locked or unreachable
    database) are re-raised as PersistenceError; every other exception
    propagates unchanged after the rollback.

    Example:
        with transaction(session, f"archive {ride_id}"):
            session.merge(history_entry)
            session.delete(live_row)
    """
    try:
        yield session
        session.commit()
    except OperationalError as e:
        session.rollback()
        raise PersistenceError(f"{description} failed: {e.orig or e}") from e
    except Exception:
        session.rollback()
        raise
