"""
Inspection script for exported TFRecord splits.

Reads the train/, test/ and val/ directories under a local output directory,
verifies every frame checksum and prints record counts plus the decoded
features of the first few records.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List

import typer
from google.protobuf import json_format

from dataflow_jobs.encoding.example_proto import Example
from dataflow_jobs.encoding.tfrecord import read_records
from dataflow_jobs.partition import Split

app = typer.Typer(help="Inspect TFRecord splits written by the export job.")


def _count_split(directory: Path, suffix: str) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for path in sorted(directory.glob(f"*{suffix}")):
        with path.open("rb") as f:
            counts[path.name] = sum(1 for _ in read_records(f))
    return counts


def _head(directory: Path, suffix: str, limit: int) -> List[dict]:
    examples: List[dict] = []
    for path in sorted(directory.glob(f"*{suffix}")):
        with path.open("rb") as f:
            for data in read_records(f):
                examples.append(json_format.MessageToDict(Example.FromString(data)))
                if len(examples) >= limit:
                    return examples
    return examples


@app.command()
def main(
    output_directory: Path = typer.Argument(..., help="Local export output directory."),
    suffix: str = typer.Option(".tfrecord", "--suffix", help="TFRecord file suffix."),
    head: int = typer.Option(1, "--head", help="Records to decode and print per split."),
) -> None:
    for split in Split:
        directory = output_directory / split.subdirectory
        if not directory.exists():
            typer.echo(f"{split.label}: missing ({directory})")
            continue
        counts = _count_split(directory, suffix)
        typer.echo(f"{split.label}: {sum(counts.values())} records in {len(counts)} file(s)")
        for example in _head(directory, suffix, head):
            typer.echo(f"  {example}")


if __name__ == "__main__":
    app()
