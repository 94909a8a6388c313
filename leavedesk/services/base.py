import logging
from contextlib import contextmanager
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from leavedesk.core.exceptions import ConcurrencyConflictError


class BaseService:
    """
    Common plumbing for domain services: the request-scoped session,
    a per-service logger, and the unit-of-work boundary.
    """

    def __init__(self, db: Session):
        self.db = db
        self._logger = logging.getLogger(self.__class__.__module__)

    @contextmanager
    def transaction(self):
        """
        Commit everything written inside the block as one unit, or nothing.

        Any exception rolls the session back before propagating. A stale
        optimistic-lock write is reported as ConcurrencyConflictError.
        """
        try:
            yield self.db
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            self.log_warning(f"Concurrent modification detected: {e}")
            raise ConcurrencyConflictError() from e
        except Exception:
            self.db.rollback()
            raise

    def log_info(self, message: str, **extra):
        self._logger.info(message, extra=extra or None)

    def log_warning(self, message: str, **extra):
        self._logger.warning(message, extra=extra or None)

    def log_error(self, message: str, **extra):
        self._logger.error(message, extra=extra or None, exc_info=True)
