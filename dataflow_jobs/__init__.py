"""
Dataflow jobs - batch exports of SQL query results to TFRecords, and Neo4j
preload actions.

This package provides:

- A record encoder turning query rows into ``tf.train.Example`` bytes
- A seeded train/test/validation splitter
- TFRecord writers for local paths and Cloud Storage
- BigQuery and PostgreSQL query sources
- A Cypher preload action that tags every call with transaction metadata
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from dataflow_jobs.config import Settings, get_settings
from dataflow_jobs.domain.errors import (
    ConfigurationError,
    DataflowJobError,
    InvalidSplitError,
    UnsupportedTypeError,
)
from dataflow_jobs.encoding import encode, encode_row, row_to_example
from dataflow_jobs.partition import Partitioner, Split, SplitRatios, assign_split
from dataflow_jobs.paths import concat_uri
from dataflow_jobs.pipeline import ExportOptions, ExportResult, run_export
from dataflow_jobs.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Errors
    "ConfigurationError",
    "DataflowJobError",
    "InvalidSplitError",
    "UnsupportedTypeError",
    # Encoding and splitting
    "encode",
    "encode_row",
    "row_to_example",
    "Partitioner",
    "Split",
    "SplitRatios",
    "assign_split",
    "concat_uri",
    # Export
    "ExportOptions",
    "ExportResult",
    "run_export",
    # Logging
    "configure_logging",
    "get_logger",
]
