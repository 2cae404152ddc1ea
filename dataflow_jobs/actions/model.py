"""
Action models for the Neo4j import job.

An action is one Cypher statement run at a given stage of the import, either
as a single autocommit statement or inside a managed write transaction.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class CypherExecutionMode(enum.Enum):
    AUTOCOMMIT = "autocommit"
    TRANSACTION = "transaction"


class ActionStage(enum.Enum):
    START = "start"
    PRE_NODES = "pre_nodes"
    POST_NODES = "post_nodes"
    PRE_RELATIONSHIPS = "pre_relationships"
    POST_RELATIONSHIPS = "post_relationships"
    PRE_QUERIES = "pre_queries"
    POST_QUERIES = "post_queries"
    END = "end"


class CypherAction(BaseModel):
    """
    A single Cypher statement to run against the target database.
    """

    active: bool = Field(True, description="Inactive actions are skipped.")
    name: str = Field(..., min_length=1)
    stage: ActionStage = ActionStage.START
    query: str = Field(..., min_length=1)
    execution_mode: CypherExecutionMode = CypherExecutionMode.AUTOCOMMIT

    model_config = ConfigDict(frozen=True)


class ConnectionParams(BaseModel):
    """
    Where and how to connect to Neo4j.
    """

    server_url: str
    database: Optional[str] = None
    username: str = "neo4j"
    password: SecretStr = SecretStr("")

    model_config = ConfigDict(frozen=True)


class ActionContext(BaseModel):
    action: CypherAction
    connection_params: ConnectionParams
    version: str

    model_config = ConfigDict(frozen=True)


@dataclass(frozen=True)
class TransactionConfig:
    """
    Per-call transaction settings. Compared by value, so two configs with the
    same metadata are equal.
    """

    metadata: Mapping[str, Any] = field(default_factory=dict)
    timeout: Optional[float] = None


__all__ = [
    "CypherExecutionMode",
    "ActionStage",
    "CypherAction",
    "ConnectionParams",
    "ActionContext",
    "TransactionConfig",
]
