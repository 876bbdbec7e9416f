# apps/common/retry.py

import functools
import logging
import time

from django.conf import settings
from django.db import OperationalError, connection

from .exceptions import StorageConflict

logger = logging.getLogger(__name__)


def retry_on_conflict(
    func=None,
    *,
    max_attempts: int | None = None,
    retry_delay: float = 0.05,
    retry_backoff: float = 2.0,
):
    """
    Retry an atomic service call when the database reports a conflict.

    Deadlocks and serialization failures surface from the driver as
    ``OperationalError``. The wrapped call is re-run up to ``max_attempts``
    times with exponential backoff, then ``StorageConflict`` is raised.

    Inside an enclosing transaction the outer unit is already doomed, so the
    conflict is raised as ``StorageConflict`` at once. The outermost
    decorated call, which owns the transaction, catches it and retries.
    """
    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            attempts = max_attempts or settings.STORAGE_CONFLICT_MAX_ATTEMPTS
            attempt = 0
            while True:
                attempt += 1
                try:
                    return fn(*args, **kwargs)
                except (OperationalError, StorageConflict) as e:
                    if connection.in_atomic_block:
                        if isinstance(e, StorageConflict):
                            raise
                        logger.debug(f"Conflict in nested {fn.__name__}, leaving retry to the caller")
                        raise StorageConflict() from e
                    if attempt >= attempts:
                        logger.error(f"{fn.__name__} gave up after {attempt} attempt(s): {e}")
                        if isinstance(e, StorageConflict):
                            raise
                        raise StorageConflict() from e
                    delay = retry_delay * (retry_backoff ** (attempt - 1))
                    logger.warning(
                        f"Storage conflict in {fn.__name__} "
                        f"(attempt {attempt}/{attempts}), retrying in {delay:.2f}s"
                    )
                    time.sleep(delay)
        return wrapper

    if func is not None:
        return decorator(func)
    return decorator
