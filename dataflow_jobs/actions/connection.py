"""
Neo4j connection capability.

Actions only need two entry points: run a single autocommit statement, or
run a callback inside a managed write transaction. ``Neo4jConnection``
captures that; ``DriverNeo4jConnection`` implements it on the official
driver. Connections are handed to actions by a ``ConnectionProvider`` so
tests can substitute a double.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol, TypeVar, runtime_checkable

from neo4j import Driver, GraphDatabase, Query, basic_auth, unit_of_work

from dataflow_jobs.actions.model import ConnectionParams, TransactionConfig

T = TypeVar("T")

TransactionCallback = Callable[[Any], T]


@runtime_checkable
class Neo4jConnection(Protocol):
    def run_autocommit(self, statement: str, tx_config: TransactionConfig) -> None:
        """Run one statement in its own auto-committed transaction."""
        ...

    def write_transaction(self, work: TransactionCallback, tx_config: TransactionConfig) -> Any:
        """Run ``work(tx)`` inside a managed write transaction and return its result."""
        ...

    def close(self) -> None:
        ...


ConnectionProvider = Callable[[ConnectionParams, str], Neo4jConnection]


class DriverNeo4jConnection(Neo4jConnection):
    """
    ``Neo4jConnection`` backed by a ``neo4j.Driver``.

    Each call opens a short-lived session on the configured database. Driver
    errors propagate unchanged.
    """

    def __init__(self, driver: Driver, database: Optional[str] = None) -> None:
        self._driver = driver
        self._database = database

    def run_autocommit(self, statement: str, tx_config: TransactionConfig) -> None:
        query = Query(statement, metadata=dict(tx_config.metadata), timeout=tx_config.timeout)
        with self._driver.session(database=self._database) as session:
            session.run(query).consume()

    def write_transaction(self, work: TransactionCallback, tx_config: TransactionConfig) -> Any:
        managed = unit_of_work(metadata=dict(tx_config.metadata), timeout=tx_config.timeout)(work)
        with self._driver.session(database=self._database) as session:
            return session.execute_write(managed)

    def close(self) -> None:
        self._driver.close()


def connect(params: ConnectionParams, version: str) -> Neo4jConnection:
    """
    Default provider: open a driver whose user agent carries the job version.
    """
    driver = GraphDatabase.driver(
        params.server_url,
        auth=basic_auth(params.username, params.password.get_secret_value()),
        user_agent=f"neo4j-dataflow/{version}",
    )
    return DriverNeo4jConnection(driver, params.database)


__all__ = [
    "Neo4jConnection",
    "ConnectionProvider",
    "TransactionCallback",
    "DriverNeo4jConnection",
    "connect",
]
