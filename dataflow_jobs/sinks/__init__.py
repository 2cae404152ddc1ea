"""
Sinks package: where encoded splits are written.

Keep this layer focused on I/O; encoding and partitioning live elsewhere.
"""

from dataflow_jobs.sinks.storage import (
    GcsStorage,
    LocalStorage,
    OutputStorage,
    SchemeStorage,
    default_storage,
)
from dataflow_jobs.sinks.tfrecord_sink import SplitWriter, shard_name, temp_shard_name

__all__ = [
    "GcsStorage",
    "LocalStorage",
    "OutputStorage",
    "SchemeStorage",
    "default_storage",
    "SplitWriter",
    "shard_name",
    "temp_shard_name",
]
