"""
Query source interface and shared value normalization.

A source runs one SQL query and yields a ``SchemaAndRow`` per result row.
Sources normalize values so that every backend hands the encoder the same
representation:

- TIMESTAMP values become integer microseconds since the Unix epoch (the
  representation BigQuery's Avro read path produces);
- DATE and TIME values stay as ``date``/``time`` objects, whose ``str()`` is
  the ISO form the encoder writes.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Iterator, Protocol, runtime_checkable

from dataflow_jobs.domain.schema import SchemaAndRow

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)


@runtime_checkable
class QuerySource(Protocol):
    """
    Common interface every query source implements.

    Attributes
    ----------
    name : str
        A short machine-friendly identifier.
    """

    name: str

    def rows(self, query: str) -> Iterator[SchemaAndRow]:
        """Run ``query`` and stream its rows with their schema."""
        ...


def timestamp_micros(value: Any) -> Any:
    """
    Convert a datetime to microseconds since the epoch. Naive datetimes are taken
    as UTC; non-datetime values pass through untouched.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return (value - _EPOCH) // _MICROSECOND
    return value


def normalize_timestamp(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [timestamp_micros(item) for item in value]
    return timestamp_micros(value)


__all__ = ["QuerySource", "timestamp_micros", "normalize_timestamp"]
