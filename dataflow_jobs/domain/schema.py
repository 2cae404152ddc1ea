"""
Schema and row models for query results.

A query source yields one ``SchemaAndRow`` per result row: the ordered column
schema as the source declares it, plus a mapping from column name to value.
Type names stay as plain strings here (that is what BigQuery and the other
sources report); they are resolved to a ``FieldType`` only when a value is
encoded, so an unknown type fails the run at the first row that carries it.
"""
from __future__ import annotations

import enum
from typing import Any, Mapping, Tuple

from pydantic import BaseModel, ConfigDict, Field

from dataflow_jobs.domain.errors import UnsupportedTypeError


class FieldEncoding(enum.Enum):
    """How a column is laid out inside a ``tf.train.Feature``."""

    STRING_LIKE = "string_like"  # bytes_list of UTF-8 text
    BYTES = "bytes"  # bytes_list of raw bytes
    INTEGER = "integer"  # int64_list
    FLOAT = "float"  # float_list (float32)
    BOOLEAN = "boolean"  # int64_list of 0/1


class FieldType(enum.Enum):
    """Column types understood by the encoder, keyed by their SQL type name."""

    STRING = "STRING"
    TIME = "TIME"
    DATE = "DATE"
    BYTES = "BYTES"
    INTEGER = "INTEGER"
    INT64 = "INT64"
    TIMESTAMP = "TIMESTAMP"
    FLOAT = "FLOAT"
    FLOAT64 = "FLOAT64"
    BOOLEAN = "BOOLEAN"
    BOOL = "BOOL"

    @property
    def encoding(self) -> FieldEncoding:
        return _ENCODING_BY_TYPE[self]

    @classmethod
    def parse(cls, type_name: str) -> "FieldType":
        """
        Resolve a declared type name, ignoring case.

        Raises
        ------
        UnsupportedTypeError
            If the name is not one of the supported types.
        """
        member = cls.__members__.get(str(type_name).upper())
        if member is None:
            raise UnsupportedTypeError(type_name)
        return member


_ENCODING_BY_TYPE = {
    FieldType.STRING: FieldEncoding.STRING_LIKE,
    FieldType.TIME: FieldEncoding.STRING_LIKE,
    FieldType.DATE: FieldEncoding.STRING_LIKE,
    FieldType.BYTES: FieldEncoding.BYTES,
    FieldType.INTEGER: FieldEncoding.INTEGER,
    FieldType.INT64: FieldEncoding.INTEGER,
    FieldType.TIMESTAMP: FieldEncoding.INTEGER,
    FieldType.FLOAT: FieldEncoding.FLOAT,
    FieldType.FLOAT64: FieldEncoding.FLOAT,
    FieldType.BOOLEAN: FieldEncoding.BOOLEAN,
    FieldType.BOOL: FieldEncoding.BOOLEAN,
}


class SchemaField(BaseModel):
    """
    One column of a query result schema.
    """

    name: str = Field(..., description="Column name, used as the feature key.")
    type: str = Field(..., description="Declared SQL type name, e.g. STRING or INT64.")
    mode: str = Field("NULLABLE", description="NULLABLE, REQUIRED or REPEATED.")

    model_config = ConfigDict(frozen=True)

    @property
    def is_repeated(self) -> bool:
        return self.mode.upper() == "REPEATED"


TableSchema = Tuple[SchemaField, ...]


class SchemaAndRow(BaseModel):
    """
    A single query result row paired with the schema it was read under.
    """

    table_schema: TableSchema = Field(..., description="Ordered column schema.")
    row: Mapping[str, Any] = Field(default_factory=dict, description="Column name to value.")

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


__all__ = [
    "FieldEncoding",
    "FieldType",
    "SchemaField",
    "TableSchema",
    "SchemaAndRow",
]
