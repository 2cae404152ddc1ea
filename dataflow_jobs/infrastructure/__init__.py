"""
Infrastructure package for the dataflow jobs.

Centralizes connectivity to the PostgreSQL query source.
"""

from dataflow_jobs.infrastructure.db_factory import build_dsn, get_sync_connection

__all__ = [
    "build_dsn",
    "get_sync_connection",
]
