"""
Neo4j actions package.

Re-exports the action models, the connection capability and the preload
Cypher action so callers can import from ``dataflow_jobs.actions`` directly.
"""

from dataflow_jobs.actions.connection import (
    ConnectionProvider,
    DriverNeo4jConnection,
    Neo4jConnection,
    connect,
)
from dataflow_jobs.actions.model import (
    ActionContext,
    ActionStage,
    ConnectionParams,
    CypherAction,
    CypherExecutionMode,
    TransactionConfig,
)
from dataflow_jobs.actions.preload import (
    PreloadAction,
    PreloadCypherAction,
    run_preload_actions,
    transaction_metadata,
)

__all__ = [
    "ConnectionProvider",
    "DriverNeo4jConnection",
    "Neo4jConnection",
    "connect",
    "ActionContext",
    "ActionStage",
    "ConnectionParams",
    "CypherAction",
    "CypherExecutionMode",
    "TransactionConfig",
    "PreloadAction",
    "PreloadCypherAction",
    "run_preload_actions",
    "transaction_metadata",
]
