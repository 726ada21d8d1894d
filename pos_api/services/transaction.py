# =========================================================
# TRANSACTION COORDINATOR
#
# One atomic scope = one Session, one transaction.
#
# - fn returns normally  -> commit everything fn wrote
# - fn raises anything   -> roll back everything, re-raise
# - session is always closed on exit
#
# Data store errors become StorageFailure. Sale errors and any
# other exception propagate unchanged.
# =========================================================

import logging
from contextvars import ContextVar
from typing import Callable, Optional, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from pos_api.core.config import settings
from pos_api.core.errors import NestedTransactionError, StorageFailure
from pos_api.database import LockingSessionLocal

logger = logging.getLogger("pos_api")

T = TypeVar("T")

# lock_not_available, deadlock_detected
_RETRYABLE_PGCODES = {"55P03", "40P01"}

_active_scope: ContextVar[Optional[Session]] = ContextVar("active_scope", default=None)


def _is_retryable(exc: SQLAlchemyError) -> bool:
    if not isinstance(exc, DBAPIError):
        return False

    if getattr(exc.orig, "pgcode", None) in _RETRYABLE_PGCODES:
        return True

    # SQLite busy timeout
    return "database is locked" in str(exc.orig)


def translate_storage_error(exc: SQLAlchemyError) -> StorageFailure:
    retryable = _is_retryable(exc)
    cause = exc.orig if isinstance(exc, DBAPIError) else exc
    message = str(cause).strip().splitlines()[0] if str(cause).strip() else type(exc).__name__

    if retryable:
        return StorageFailure(f"Lock wait timed out or conflicted, retry the request: {message}", retryable=True)
    return StorageFailure(f"Data store failure: {message}")


def _rollback(db: Session, cause: BaseException) -> None:
    # The error that aborted the scope is the one the caller sees
    try:
        db.rollback()
    except SQLAlchemyError as rollback_exc:
        logger.error(f"Rollback failed after {cause!r}: {rollback_exc!r}")


class TransactionCoordinator:
    def __init__(
        self,
        session_factory: sessionmaker = LockingSessionLocal,
        lock_timeout_ms: int = settings.LOCK_TIMEOUT_MS,
    ):
        self.session_factory = session_factory
        self.lock_timeout_ms = lock_timeout_ms

    def _apply_lock_timeout(self, db: Session) -> None:
        if db.get_bind().dialect.name == "postgresql":
            # SET LOCAL lasts until the end of this transaction only
            db.execute(text(f"SET LOCAL lock_timeout = {int(self.lock_timeout_ms)}"))

    def run_atomic(self, fn: Callable[[Session], T]) -> T:
        if _active_scope.get() is not None:
            raise NestedTransactionError("An atomic scope is already active")

        db = self.session_factory()
        token = _active_scope.set(db)

        try:
            db.begin()
            self._apply_lock_timeout(db)

            result = fn(db)

            db.commit()
            logger.debug("Atomic scope committed")
            return result

        except SQLAlchemyError as exc:
            _rollback(db, exc)
            failure = translate_storage_error(exc)
            logger.error(f"Atomic scope rolled back on storage error: {failure.message}")
            raise failure from exc

        except BaseException as exc:
            _rollback(db, exc)
            logger.warning(f"Atomic scope rolled back: {exc!r}")
            raise

        finally:
            _active_scope.reset(token)
            db.close()
