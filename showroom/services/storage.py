"""Transaction scope shared by the stores; maps driver errors onto the core taxonomy."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from showroom.core.exceptions import ConflictError, StorageUnavailable

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(session_factory: sessionmaker[Session], operation: str) -> Iterator[Session]:
    """
    Yield a session, commit on success, roll back on error.

    IntegrityError becomes ConflictError, any other database failure becomes
    StorageUnavailable. Nothing is retried here.
    """
    db = session_factory()
    try:
        yield db
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.info("Storage conflict", extra={"operation": operation})
        raise ConflictError(f"{operation}: unique value already exists") from e
    except (DBAPIError, PoolTimeoutError) as e:
        db.rollback()
        logger.error(
            "Storage failure",
            extra={"operation": operation, "error_type": type(e).__name__},
        )
        raise StorageUnavailable(f"{operation}: storage unavailable") from e
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
