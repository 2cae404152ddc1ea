"""
BigQuery query source.

Runs the export query as standard SQL with ``google-cloud-bigquery`` and
streams the result pages. The table schema is taken from the result
iterator, so every row carries the declared ``field_type``/``mode`` of its
columns.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, Optional

from google.cloud import bigquery

from dataflow_jobs.domain.schema import SchemaAndRow, SchemaField, TableSchema
from dataflow_jobs.sources.base import QuerySource, normalize_timestamp
from dataflow_jobs.utils.logging import get_logger

log = get_logger(__name__)


def table_schema_from(fields) -> TableSchema:
    """Convert ``bigquery.SchemaField`` objects into our schema tuple."""
    return tuple(
        SchemaField(name=field.name, type=field.field_type, mode=field.mode or "NULLABLE")
        for field in fields
    )


def _normalize_row(schema: TableSchema, values: Dict[str, Any]) -> Dict[str, Any]:
    for field in schema:
        if field.type.upper() == "TIMESTAMP" and values.get(field.name) is not None:
            values[field.name] = normalize_timestamp(values[field.name])
    return values


class BigQuerySource(QuerySource):
    """
    Read rows from a BigQuery standard SQL query.

    The client is created lazily from application default credentials unless
    one is injected.
    """

    name: str = "bigquery"

    def __init__(
        self,
        client: Optional[bigquery.Client] = None,
        project: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> None:
        self._client = client
        self._project = project
        self.page_size = page_size

    @property
    def client(self) -> bigquery.Client:
        if self._client is None:
            self._client = bigquery.Client(project=self._project)
        return self._client

    def rows(self, query: str) -> Iterator[SchemaAndRow]:
        job_config = bigquery.QueryJobConfig(use_legacy_sql=False)
        job = self.client.query(query, job_config=job_config)
        result = job.result(page_size=self.page_size)
        schema = table_schema_from(result.schema)
        log.info(
            "BigQuery query started",
            extra={"job_id": getattr(job, "job_id", None), "columns": [f.name for f in schema]},
        )
        for row in result:
            yield SchemaAndRow(table_schema=schema, row=_normalize_row(schema, dict(row.items())))


__all__ = ["BigQuerySource", "table_schema_from"]
