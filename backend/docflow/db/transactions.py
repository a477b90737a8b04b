"""Transaction boundaries for core operations.

Every mutating operation runs as one unit: the work function flushes, the
commit happens here, and any failure rolls the whole unit back.
"""

import logging
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from backend.docflow.errors import ConflictError, StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_version_number_conflict(error: IntegrityError) -> bool:
    """True if the violation is the (branch_id, version_number) uniqueness constraint."""
    message = str(error.orig)
    return "uq_version_branch_number" in message or (
        "document_version.branch_id" in message and "document_version.version_number" in message
    )


def run_atomic(
    session: Session,
    work: Callable[[], T],
    *,
    retries: int = 0,
    retry_if: Callable[[IntegrityError], bool] | None = None,
) -> T:
    """Run ``work`` and commit, rolling back on any failure.

    Args:
        session: Session owning the transaction
        work: Callable performing reads/writes; must not commit itself
        retries: Extra attempts allowed when ``retry_if`` matches an IntegrityError
        retry_if: Predicate selecting retryable uniqueness violations

    Returns:
        Whatever ``work`` returned

    Raises:
        ConflictError: On uniqueness violations (after retries are exhausted)
        StorageError: On connection-level failures of the store
    """
    attempt = 0
    while True:
        try:
            result = work()
            session.commit()
            return result
        except IntegrityError as e:
            session.rollback()
            if retry_if is not None and retry_if(e) and attempt < retries:
                attempt += 1
                logger.warning(
                    "Uniqueness conflict, retrying transaction",
                    extra={"structured": {"attempt": attempt, "retries": retries}},
                )
                continue
            raise ConflictError("Concurrent update conflicted with an existing row") from e
        except OperationalError as e:
            session.rollback()
            raise StorageError(f"Storage unavailable: {type(e.orig).__name__}") from e
        except BaseException:
            session.rollback()
            raise
