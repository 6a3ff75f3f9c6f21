"""
One database transaction per business operation.

Resource pool and product rows are versioned; when a concurrent request
updated one of them first, SQLAlchemy raises StaleDataError at flush time and
the whole operation is rolled back as a ResourceConflictError (HTTP 409).
"""

from contextlib import contextmanager
from sqlalchemy.orm.exc import StaleDataError
from workshop import db
from workshop.business.errors import ResourceConflictError
from workshop.utils.logger import get_logger

logger = get_logger("workshop.business.core.unit_of_work")


@contextmanager
def unit_of_work(description: str):
    """
    Commit once when the block finishes, roll back on any error.

    Raises:
        ResourceConflictError: If a versioned row was changed concurrently
    """
    try:
        yield db.session
        db.session.commit()
    except StaleDataError as e:
        db.session.rollback()
        logger.warning(f"{description}: concurrent update detected ({e})")
        raise ResourceConflictError(
            f"{description} conflicted with a concurrent update, please retry"
        )
    except Exception:
        db.session.rollback()
        raise
