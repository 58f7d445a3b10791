# app/services/transaction.py
"""Atomic unit of work shared by the write services."""

from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.services.exceptions import LifecycleError
from app.utils.logger import get_logger

logger = get_logger(__name__)


@contextmanager
def atomic(db: Session, failure_message: str):
    """
    Commit everything done inside the block, or nothing.
    Database errors (including stale vehicle versions) roll back and are
    re-raised as LifecycleError carrying `failure_message`.
    """
    try:
        yield
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{failure_message} ({type(e).__name__}: {e})", exc_info=True)
        raise LifecycleError(failure_message) from e
