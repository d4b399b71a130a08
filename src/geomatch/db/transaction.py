import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """Commit the block's writes together, or roll all of them back and re-raise.

    A failing commit is rolled back the same way as a failing block.

    Example:
        with session_maker() as session, transaction(session):
            trips.create(...)
            drivers.update_status("d1", DriverStatus.ON_TRIP)
    """
    try:
        yield session
        session.commit()
    except Exception as e:
        logger.debug(f"Rolling back after {type(e).__name__}: {e}")
        session.rollback()
        raise
