"""
Configuration settings for the dataflow jobs.

Uses Pydantic Settings to load environment variables for the query source,
the TFRecord export, the Neo4j sink and logging. Every field can also be
overridden per invocation from the CLI.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Query source
    query_source: str = Field("bigquery", alias="QUERY_SOURCE")
    gcp_project: Optional[str] = Field(None, alias="GCP_PROJECT")
    read_query: Optional[str] = Field(None, alias="READ_QUERY")

    # PostgreSQL source
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("dataflow", alias="DB_NAME")
    db_batch_size: int = Field(10_000, alias="DB_BATCH_SIZE")

    # TFRecord export
    output_directory: Optional[str] = Field(None, alias="OUTPUT_DIRECTORY")
    output_suffix: str = Field(".tfrecord", alias="OUTPUT_SUFFIX")
    training_percentage: float = Field(1.0, alias="TRAINING_PERCENTAGE")
    testing_percentage: float = Field(0.0, alias="TESTING_PERCENTAGE")
    validation_percentage: float = Field(0.0, alias="VALIDATION_PERCENTAGE")
    split_seed: int = Field(100, alias="SPLIT_SEED")
    export_workers: int = Field(1, alias="EXPORT_WORKERS")
    export_chunk_size: int = Field(10_000, alias="EXPORT_CHUNK_SIZE")
    export_shards: int = Field(1, alias="EXPORT_SHARDS")

    # Neo4j
    neo4j_uri: str = Field("neo4j://localhost:7687", alias="NEO4J_URI")
    neo4j_database: str = Field("neo4j", alias="NEO4J_DATABASE")
    neo4j_user: str = Field("neo4j", alias="NEO4J_USER")
    neo4j_password: str = Field("neo4j", alias="NEO4J_PASSWORD")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def postgres_dsn(self) -> str:
        return (
            f"postgresql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
