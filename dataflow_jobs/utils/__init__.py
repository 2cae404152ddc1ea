"""
Utilities package for the dataflow jobs.

Exports shared helpers for logging and profiling.
Keep this package lightweight and free of domain-specific logic.
"""

from dataflow_jobs.utils.logging import configure_logging, get_logger
from dataflow_jobs.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
