"""
Pytest configuration for the dataflow jobs.

Provides fixtures for:
- Settings isolation (cached settings are cleared around every test)
- An in-memory query source with a typed schema
- A recording Neo4j connection double
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Iterator, List, Mapping, Sequence

import pytest

from dataflow_jobs.actions.model import TransactionConfig
from dataflow_jobs.config import get_settings
from dataflow_jobs.domain.schema import SchemaAndRow, SchemaField, TableSchema


class InMemorySource:
    """Query source double yielding fixed rows and recording the queries it ran."""

    name = "in_memory"

    def __init__(self, schema: TableSchema, rows: Sequence[Mapping[str, Any]]) -> None:
        self.schema = schema
        self._rows = list(rows)
        self.queries: List[str] = []

    def rows(self, query: str) -> Iterator[SchemaAndRow]:
        self.queries.append(query)
        for row in self._rows:
            yield SchemaAndRow(table_schema=self.schema, row=dict(row))


class FakeTransaction:
    def __init__(self) -> None:
        self.statements: List[str] = []
        self.consumed = 0

    def run(self, statement: str) -> "FakeTransaction":
        self.statements.append(statement)
        return self

    def consume(self) -> None:
        self.consumed += 1


class RecordingNeo4jConnection:
    """Neo4jConnection double recording every call it receives."""

    def __init__(self) -> None:
        self.autocommit_calls: List[tuple[str, TransactionConfig]] = []
        self.transaction_calls: List[tuple[Any, TransactionConfig]] = []
        self.close_calls = 0

    def run_autocommit(self, statement: str, tx_config: TransactionConfig) -> None:
        self.autocommit_calls.append((statement, tx_config))

    def write_transaction(self, work, tx_config: TransactionConfig) -> Any:
        self.transaction_calls.append((work, tx_config))
        return work(FakeTransaction())

    def close(self) -> None:
        self.close_calls += 1


@pytest.fixture(autouse=True)
def _isolate_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def sample_schema() -> TableSchema:
    return (
        SchemaField(name="id", type="INTEGER", mode="REQUIRED"),
        SchemaField(name="name", type="STRING"),
        SchemaField(name="score", type="FLOAT64"),
        SchemaField(name="active", type="BOOL"),
        SchemaField(name="tags", type="STRING", mode="REPEATED"),
        SchemaField(name="day", type="DATE"),
    )


@pytest.fixture()
def sample_rows() -> List[dict]:
    return [
        {
            "id": i,
            "name": f"row-{i}",
            "score": i / 10,
            "active": i % 2 == 0,
            "tags": ["a", "b"][: i % 3],
            "day": dt.date(2024, 1, 1 + i % 28),
        }
        for i in range(50)
    ]


@pytest.fixture()
def in_memory_source(sample_schema: TableSchema, sample_rows: List[dict]) -> InMemorySource:
    return InMemorySource(sample_schema, sample_rows)


@pytest.fixture()
def neo4j_connection() -> RecordingNeo4jConnection:
    return RecordingNeo4jConnection()


@pytest.fixture()
def make_source():
    """Factory for sources with an ad-hoc schema: make_source(schema, rows)."""
    return InMemorySource
