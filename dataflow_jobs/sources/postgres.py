"""
PostgreSQL query source.

Streams the query through a named (server-side) cursor with ``fetchmany``
batching so the full result set is never held in memory. Column types are
resolved from ``cursor.description`` type OIDs and mapped onto the SQL type
names the encoder understands; array columns become REPEATED fields of their
element type. Types without a mapping keep their own upper-cased name, which
the encoder rejects as unsupported.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

import psycopg

from dataflow_jobs.config import get_settings
from dataflow_jobs.domain.schema import SchemaAndRow, SchemaField, TableSchema
from dataflow_jobs.infrastructure.db_factory import get_sync_connection
from dataflow_jobs.sources.base import QuerySource, normalize_timestamp
from dataflow_jobs.utils.logging import get_logger

log = get_logger(__name__)

POSTGRES_TYPE_NAMES: Dict[str, str] = {
    "text": "STRING",
    "varchar": "STRING",
    "bpchar": "STRING",
    "name": "STRING",
    "uuid": "STRING",
    "json": "STRING",
    "jsonb": "STRING",
    "int2": "INTEGER",
    "int4": "INTEGER",
    "int8": "INTEGER",
    "oid": "INTEGER",
    "float4": "FLOAT",
    "float8": "FLOAT",
    "bool": "BOOLEAN",
    "bytea": "BYTES",
    "date": "DATE",
    "time": "TIME",
    "timetz": "TIME",
    "timestamp": "TIMESTAMP",
    "timestamptz": "TIMESTAMP",
}


def _json_text(value: Any) -> Any:
    return value if isinstance(value, str) else json.dumps(value, default=str)


def _normalizer(pg_type: str, repeated: bool) -> Optional[Callable[[Any], Any]]:
    if pg_type in ("timestamp", "timestamptz"):
        return normalize_timestamp
    if pg_type in ("json", "jsonb") and not repeated:
        # A JSON array is still one document, not a repeated column.
        return _json_text
    if pg_type in ("json", "jsonb"):
        return lambda values: [_json_text(v) for v in values]
    return None


def describe_columns(conn: psycopg.Connection, description: Sequence[Any]) -> List[SchemaField]:
    """
    Map ``cursor.description`` entries to schema fields.
    """
    fields: List[SchemaField] = []
    for column in description:
        info = conn.adapters.types.get(column.type_code)
        if info is None:
            pg_type, repeated = str(column.type_code), False
        else:
            pg_type, repeated = info.name, info.array_oid == column.type_code
        fields.append(
            SchemaField(
                name=column.name,
                type=POSTGRES_TYPE_NAMES.get(pg_type, pg_type.upper()),
                mode="REPEATED" if repeated else "NULLABLE",
            )
        )
    return fields


class PostgresSource(QuerySource):
    """
    Server-side cursor over a psycopg connection, batched with fetchmany.
    """

    name: str = "postgres"

    def __init__(self, dsn: Optional[str] = None, batch_size: Optional[int] = None) -> None:
        self.batch_size = batch_size or get_settings().db_batch_size
        self._dsn = dsn

    def rows(self, query: str) -> Iterator[SchemaAndRow]:
        conn = get_sync_connection(self._dsn)
        try:
            with conn.cursor(name="dataflow_export") as cur:
                cur.execute(query)
                fields = describe_columns(conn, cur.description)
                schema: TableSchema = tuple(fields)
                normalizers = []
                for column, field in zip(cur.description, fields):
                    info = conn.adapters.types.get(column.type_code)
                    normalizers.append(
                        _normalizer(info.name, field.is_repeated) if info is not None else None
                    )
                names = [field.name for field in fields]
                log.info("Postgres query started", extra={"columns": names})

                while True:
                    batch = cur.fetchmany(self.batch_size)
                    if not batch:
                        break
                    for values in batch:
                        row: Dict[str, Any] = {}
                        for name, normalize, value in zip(names, normalizers, values):
                            if value is not None and normalize is not None:
                                value = normalize(value)
                            row[name] = value
                        yield SchemaAndRow(table_schema=schema, row=row)
        finally:
            conn.close()


__all__ = ["PostgresSource", "POSTGRES_TYPE_NAMES", "describe_columns"]
