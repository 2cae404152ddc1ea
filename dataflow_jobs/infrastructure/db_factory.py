"""
Database connection factory for the PostgreSQL query source.

Connection acquisition retries transient failures with tenacity; once a
connection is open, query errors propagate to the caller unchanged.
"""

from __future__ import annotations

from typing import Optional

import psycopg
from psycopg import Connection
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from dataflow_jobs.config import get_settings


def build_dsn(dsn_override: Optional[str] = None) -> str:
    """Compose a DSN string from settings unless an explicit one is given."""
    if dsn_override:
        return dsn_override
    return get_settings().postgres_dsn


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn: Optional[str] = None) -> Connection:
    """
    Acquire a dedicated synchronous connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.

    Returns
    -------
    Connection
        A new psycopg connection instance.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(build_dsn(dsn))


__all__ = ["build_dsn", "get_sync_connection"]
