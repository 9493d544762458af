# backend/services/concurrency.py
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from services.errors import StorageError, ValidationError


def lock_for_update(query):
    """
    Row-level lock that skips rows another transaction already holds.

    NOTE: SQLite renders no FOR UPDATE clause; there the conditional
    UPDATE in the callers is what keeps claims exclusive.
    """
    return query.with_for_update(skip_locked=True)


def commit(db: Session, *, conflict_message: str = None):
    """
    Commit the current unit of work.

    IntegrityError becomes ValidationError when the caller names the
    conflict it expects (e.g. a duplicate serial), anything else from the
    database becomes StorageError. The session is rolled back either way.
    """
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if conflict_message:
            raise ValidationError(conflict_message) from exc
        raise StorageError(str(exc.orig)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError(str(exc)) from exc
