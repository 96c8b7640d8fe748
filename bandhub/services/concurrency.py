from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from bandhub.core.errors import InvalidStateError


@contextmanager
def optimistic_transaction(db: Session, *, conflict_detail: str) -> Iterator[None]:
    """Commit the body's writes, reporting version or uniqueness conflicts as InvalidState.

    Versioned rows are updated with ``WHERE version = :seen``; a concurrent
    writer makes that update match nothing and SQLAlchemy raises
    ``StaleDataError``. The partial unique index on active members surfaces as
    ``IntegrityError``. Either way the whole unit of work is rolled back.
    """
    try:
        yield
        db.commit()
    except (StaleDataError, IntegrityError) as exc:
        db.rollback()
        raise InvalidStateError(conflict_detail) from exc
    except Exception:
        db.rollback()
        raise
