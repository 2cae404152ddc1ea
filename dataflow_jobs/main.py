from __future__ import annotations

import json
import sys
from typing import Optional

import typer

from dataflow_jobs.actions import (
    ActionStage,
    ConnectionParams,
    CypherAction,
    CypherExecutionMode,
    run_preload_actions,
)
from dataflow_jobs.config import get_settings
from dataflow_jobs.domain.errors import DataflowJobError
from dataflow_jobs.pipeline import ExportOptions, run_export
from dataflow_jobs.reporter import render_summary
from dataflow_jobs.sources import available_sources, build_source
from dataflow_jobs.utils.logging import configure_logging

app = typer.Typer(help="Dataflow jobs: query to TFRecord export and Neo4j preload actions.")


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"source={settings.query_source} project={settings.gcp_project} | "
        f"output={settings.output_directory} suffix={settings.output_suffix} | "
        f"split={settings.training_percentage}/{settings.testing_percentage}/"
        f"{settings.validation_percentage} seed={settings.split_seed} "
        f"workers={settings.export_workers} shards={settings.export_shards} | "
        f"neo4j={settings.neo4j_user}@{settings.neo4j_uri}/{settings.neo4j_database}"
    )


@app.command()
def export(
    query: Optional[str] = typer.Option(None, "--query", "-q", help="SQL query to read rows from."),
    output_directory: Optional[str] = typer.Option(
        None,
        "--output-directory",
        "-o",
        help="Top-level output path; train/, test/ and val/ are created beneath it.",
    ),
    output_suffix: Optional[str] = typer.Option(
        None, "--output-suffix", help="File suffix for TFRecord files (default .tfrecord)."
    ),
    training_percentage: Optional[float] = typer.Option(
        None, "--training-percentage", help="Share of rows in the training set (default 1)."
    ),
    testing_percentage: Optional[float] = typer.Option(
        None, "--testing-percentage", help="Share of rows in the testing set (default 0)."
    ),
    validation_percentage: Optional[float] = typer.Option(
        None, "--validation-percentage", help="Share of rows in the validation set (default 0)."
    ),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for the split generator."),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-w", help="Encoding processes; 1 keeps exact reproducibility."
    ),
    shards: Optional[int] = typer.Option(None, "--shards", help="Output files per split."),
    source: Optional[str] = typer.Option(
        None, "--source", "-s", help=f"Query source ({', '.join(available_sources())})."
    ),
) -> None:
    """
    Export query results as train/test/validation TFRecord files.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    try:
        options = ExportOptions.from_settings(
            settings,
            read_query=query,
            output_directory=output_directory,
            output_suffix=output_suffix,
            training_percentage=training_percentage,
            testing_percentage=testing_percentage,
            validation_percentage=validation_percentage,
            seed=seed,
            workers=workers,
            num_shards=shards,
        )
        query_source = build_source(source or settings.query_source, settings)
        result = run_export(options, query_source)
    except DataflowJobError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    render_summary(result)
    typer.echo(json.dumps(result.as_dict(), indent=2))


@app.command("preload-cypher")
def preload_cypher(
    statement: str = typer.Argument(..., help="Cypher statement to run."),
    mode: CypherExecutionMode = typer.Option(
        CypherExecutionMode.AUTOCOMMIT, "--mode", "-m", help="autocommit or transaction."
    ),
    name: str = typer.Option("preload", "--name", help="Action name used in logs."),
    version: str = typer.Option("dev", "--version", help="Job version sent in the user agent."),
) -> None:
    """
    Run one Cypher statement against Neo4j as a START-stage preload action.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    action = CypherAction(
        active=True,
        name=name,
        stage=ActionStage.START,
        query=statement,
        execution_mode=mode,
    )
    params = ConnectionParams(
        server_url=settings.neo4j_uri,
        database=settings.neo4j_database,
        username=settings.neo4j_user,
        password=settings.neo4j_password,
    )
    executed = run_preload_actions([action], params, version)
    typer.echo(f"Executed: {', '.join(executed) or 'nothing'}")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
