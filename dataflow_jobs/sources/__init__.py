"""
Query sources package.

Re-exports the source interface and concrete sources, plus ``build_source``
which picks one by name from settings.
"""

from __future__ import annotations

from typing import Callable, Dict, List

from dataflow_jobs.config import Settings
from dataflow_jobs.domain.errors import ConfigurationError
from dataflow_jobs.sources.base import QuerySource
from dataflow_jobs.sources.bigquery import BigQuerySource
from dataflow_jobs.sources.postgres import PostgresSource


def _source_factories() -> Dict[str, Callable[[Settings], QuerySource]]:
    """Registry of available query sources."""
    return {
        "bigquery": lambda settings: BigQuerySource(project=settings.gcp_project),
        "postgres": lambda settings: PostgresSource(
            dsn=settings.postgres_dsn, batch_size=settings.db_batch_size
        ),
    }


def available_sources() -> List[str]:
    """List available source names."""
    return sorted(_source_factories().keys())


def build_source(kind: str, settings: Settings) -> QuerySource:
    """Build the source registered under ``kind`` (case-insensitive)."""
    factories = _source_factories()
    kind = kind.lower()
    if kind not in factories:
        raise ConfigurationError(
            f"Unknown query source '{kind}'. Available: {', '.join(sorted(factories))}"
        )
    return factories[kind](settings)


__all__ = [
    "QuerySource",
    "BigQuerySource",
    "PostgresSource",
    "available_sources",
    "build_source",
]
