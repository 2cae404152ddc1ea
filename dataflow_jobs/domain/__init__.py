"""
Domain package for the dataflow jobs.

Exports the schema/row models and the error hierarchy shared by the export
pipeline and the Neo4j actions. Keep this package free of I/O.
"""

from dataflow_jobs.domain.errors import (
    ConfigurationError,
    CorruptRecordError,
    DataflowJobError,
    InvalidSplitError,
    UnsupportedTypeError,
)
from dataflow_jobs.domain.schema import (
    FieldEncoding,
    FieldType,
    SchemaAndRow,
    SchemaField,
    TableSchema,
)

__all__ = [
    "ConfigurationError",
    "CorruptRecordError",
    "DataflowJobError",
    "InvalidSplitError",
    "UnsupportedTypeError",
    "FieldEncoding",
    "FieldType",
    "SchemaAndRow",
    "SchemaField",
    "TableSchema",
]
