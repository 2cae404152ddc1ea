"""
Preload actions: Cypher run once before the import proper starts.

Every call is tagged with transaction metadata so the statements can be
traced back to this job in the database's query log:

    {"app": "dataflow",
     "metadata": {"sink": "neo4j", "step": "cypher-preload-action", "execution": "autocommit"}}
"""

from __future__ import annotations

import abc
from typing import Any, Dict, Iterable, List, Optional

from dataflow_jobs.actions.connection import ConnectionProvider, Neo4jConnection, connect
from dataflow_jobs.actions.model import (
    ActionContext,
    ActionStage,
    ConnectionParams,
    CypherAction,
    CypherExecutionMode,
    TransactionConfig,
)
from dataflow_jobs.utils.logging import get_logger

log = get_logger(__name__)


def transaction_metadata(step: str, mode: CypherExecutionMode) -> Dict[str, Any]:
    return {
        "app": "dataflow",
        "metadata": {"sink": "neo4j", "step": step, "execution": mode.value},
    }


class PreloadAction(abc.ABC):
    """
    Interface for actions that run before any data is written.

    Subclasses set ``step`` and implement ``configure`` and ``execute``.
    """

    step: str

    @abc.abstractmethod
    def configure(self, action: CypherAction, context: ActionContext) -> None:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def execute(self) -> Any:  # pragma: no cover - interface only
        raise NotImplementedError


class PreloadCypherAction(PreloadAction):
    """
    Run one Cypher statement, in autocommit or transactional mode.

    The connection comes from the injected provider; this class never closes
    it. Errors from the connection are not retried or wrapped.
    """

    step: str = "cypher-preload-action"

    def __init__(self, connection_provider: ConnectionProvider = connect) -> None:
        self._connection_provider = connection_provider
        self._connection: Optional[Neo4jConnection] = None
        self._query: Optional[str] = None
        self._mode: Optional[CypherExecutionMode] = None

    def configure(self, action: CypherAction, context: ActionContext) -> None:
        self._query = action.query
        self._mode = action.execution_mode
        self._connection = self._connection_provider(context.connection_params, context.version)

    def execute(self) -> Any:
        if self._connection is None or self._query is None or self._mode is None:
            raise RuntimeError("PreloadCypherAction.execute() called before configure()")

        query = self._query
        tx_config = TransactionConfig(metadata=transaction_metadata(self.step, self._mode))
        log.info(
            "Running preload Cypher action",
            extra={"step": self.step, "execution": self._mode.value},
        )
        if self._mode is CypherExecutionMode.TRANSACTION:
            return self._connection.write_transaction(
                lambda tx: tx.run(query).consume(), tx_config
            )
        return self._connection.run_autocommit(query, tx_config)


def run_preload_actions(
    actions: Iterable[CypherAction],
    connection_params: ConnectionParams,
    version: str,
    connection_provider: ConnectionProvider = connect,
) -> List[str]:
    """
    Run every active START-stage action in order; return the names that ran.

    Connections opened for the actions are closed once all of them have run
    (or one has failed).
    """
    opened: List[Neo4jConnection] = []

    def _tracking_provider(params: ConnectionParams, tag: str) -> Neo4jConnection:
        connection = connection_provider(params, tag)
        opened.append(connection)
        return connection

    executed: List[str] = []
    try:
        for action in actions:
            if not action.active or action.stage is not ActionStage.START:
                log.debug(
                    "Skipping action",
                    extra={
                        "action": action.name,
                        "active": action.active,
                        "stage": action.stage.value,
                    },
                )
                continue
            context = ActionContext(
                action=action, connection_params=connection_params, version=version
            )
            preload = PreloadCypherAction(_tracking_provider)
            preload.configure(action, context)
            preload.execute()
            executed.append(action.name)
    finally:
        for connection in opened:
            connection.close()
    return executed


__all__ = [
    "PreloadAction",
    "PreloadCypherAction",
    "run_preload_actions",
    "transaction_metadata",
]
