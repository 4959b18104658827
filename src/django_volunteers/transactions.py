"""Transaction wrapper for scheduling writes.

PostgreSQL notes:
- SET TRANSACTION must be the first statement of the transaction
- SET LOCAL only lasts until the transaction ends
- A SERIALIZABLE transaction whose reads were invalidated by a concurrent
  commit is aborted with SQLSTATE 40001, on any statement or at COMMIT
"""

import logging
from contextlib import contextmanager

from django.db import DEFAULT_DB_ALIAS, OperationalError, connections, transaction

from .conf import get_scheduling_timeout_ms

logger = logging.getLogger(__name__)

SERIALIZATION_FAILURE = "40001"


@contextmanager
def scheduling_transaction(using: str = DEFAULT_DB_ALIAS):
    """
    Run a block in one atomic transaction suitable for scheduling checks.

    On PostgreSQL, when this is the outermost atomic block, the transaction
    runs at SERIALIZABLE isolation with statement and lock timeouts set to
    VOLUNTEERS_SCHEDULING_TIMEOUT_MS. Nested inside an existing transaction
    (or on other backends) it is a plain transaction.atomic() and callers
    rely on select_for_update() row locks alone.

    Database errors (timeouts, serialization failures) propagate unchanged;
    use is_serialization_failure() to tell a lost race from other errors.
    """
    connection = connections[using]
    outermost = not connection.in_atomic_block

    with transaction.atomic(using=using):
        if outermost and connection.vendor == "postgresql":
            timeout_ms = int(get_scheduling_timeout_ms())
            with connection.cursor() as cursor:
                cursor.execute("SET TRANSACTION ISOLATION LEVEL SERIALIZABLE")
                cursor.execute(f"SET LOCAL statement_timeout = {timeout_ms}")
                cursor.execute(f"SET LOCAL lock_timeout = {timeout_ms}")
            logger.debug("Scheduling transaction at SERIALIZABLE, timeout %sms", timeout_ms)
        yield


def is_serialization_failure(exc: Exception) -> bool:
    """
    True if a database error is a SERIALIZABLE abort (SQLSTATE 40001).

    Django wraps the driver exception; the SQLSTATE lives on the original,
    as `sqlstate` (psycopg 3) or `pgcode` (psycopg2).
    """
    if not isinstance(exc, OperationalError):
        return False
    cause = exc.__cause__
    code = getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)
    return code == SERIALIZATION_FAILURE
