"""
Query to TFRecord export runner.

Reads rows from a query source, encodes each row as a ``tf.train.Example``,
splits the records into train/test/validation and writes every split under
its own directory:

    <output_directory>/train/output-00000-of-00001.tfrecord
    <output_directory>/test/...
    <output_directory>/val/...

Usage (example from CLI):
    from dataflow_jobs.pipeline import ExportOptions, run_export
    from dataflow_jobs.sources import BigQuerySource

    options = ExportOptions(read_query="SELECT * FROM ds.t", output_directory="gs://b/out")
    result = run_export(options, BigQuerySource())
    print(result.counts)

With ``workers == 1`` one generator seeded with ``seed`` is drawn serially,
so split membership is exactly reproducible for the same input order. With
more workers the rows are cut into ``chunk_size`` chunks that are encoded and
split in a spawn-context process pool, each chunk with its own generator
derived from ``(seed, chunk index)``. Membership then depends on seed, chunk
size and input order, not on worker count or scheduling, and the split
ratios hold statistically rather than exactly.
"""

from __future__ import annotations

import contextlib
import itertools
import multiprocessing as mp
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dataflow_jobs.config import Settings, get_settings
from dataflow_jobs.domain.errors import ConfigurationError, DataflowJobError
from dataflow_jobs.domain.schema import SchemaAndRow
from dataflow_jobs.encoding.encoder import encode
from dataflow_jobs.partition import Partitioner, Split, SplitRatios, make_generator
from dataflow_jobs.paths import split_directory
from dataflow_jobs.sinks.storage import OutputStorage, default_storage
from dataflow_jobs.sinks.tfrecord_sink import SplitWriter
from dataflow_jobs.sources.base import QuerySource
from dataflow_jobs.utils.logging import get_logger
from dataflow_jobs.utils.profiler import profile_block

log = get_logger(__name__)


class ExportOptions(BaseModel):
    """
    Everything one export run needs, resolved from settings and CLI overrides.
    """

    read_query: str = Field(..., min_length=1)
    output_directory: str = Field(..., min_length=1)
    output_suffix: str = Field(".tfrecord", pattern=r"^[A-Za-z_0-9.]*$")
    training_percentage: float = 1.0
    testing_percentage: float = 0.0
    validation_percentage: float = 0.0
    seed: int = 100
    workers: int = Field(1, ge=1)
    chunk_size: int = Field(10_000, ge=1)
    num_shards: int = Field(1, ge=1)

    model_config = ConfigDict(frozen=True)

    def ratios(self) -> SplitRatios:
        """
        Build the split ratios.

        Raises
        ------
        InvalidSplitError
            If the percentages do not sum to 1.
        ConfigurationError
            If a percentage lies outside 0..1.
        """
        try:
            return SplitRatios(
                training=self.training_percentage,
                testing=self.testing_percentage,
                validation=self.validation_percentage,
            )
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid split percentages: {exc}") from exc

    @classmethod
    def from_settings(
        cls, settings: Optional[Settings] = None, **overrides: Any
    ) -> "ExportOptions":
        """
        Build options from settings; keyword overrides that are None are ignored.
        """
        settings = settings or get_settings()
        values: Dict[str, Any] = {
            "read_query": settings.read_query,
            "output_directory": settings.output_directory,
            "output_suffix": settings.output_suffix,
            "training_percentage": settings.training_percentage,
            "testing_percentage": settings.testing_percentage,
            "validation_percentage": settings.validation_percentage,
            "seed": settings.split_seed,
            "workers": settings.export_workers,
            "chunk_size": settings.export_chunk_size,
            "num_shards": settings.export_shards,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        if not values["read_query"]:
            raise ConfigurationError("A read query is required (READ_QUERY or --query).")
        if not values["output_directory"]:
            raise ConfigurationError(
                "An output directory is required (OUTPUT_DIRECTORY or --output-directory)."
            )
        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid export options: {exc}") from exc


@dataclass
class ExportResult:
    """
    Outcome of one export run.
    """

    counts: Dict[str, int]
    directories: Dict[str, str]
    files: Dict[str, List[str]]
    profile: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_rows(self) -> int:
        return sum(self.counts.values())

    def as_dict(self) -> Dict[str, Any]:
        return {
            "total_rows": self.total_rows,
            "counts": dict(self.counts),
            "directories": dict(self.directories),
            "files": {label: list(paths) for label, paths in self.files.items()},
            "profile": dict(self.profile),
        }


@dataclass(frozen=True)
class ChunkWork:
    index: int
    seed: int
    ratios: SplitRatios
    items: Tuple[SchemaAndRow, ...]


def _encode_chunk(work: ChunkWork) -> List[Tuple[int, bytes]]:
    """
    Worker function: encode and split one chunk with its own generator.
    """
    partitioner = Partitioner(work.ratios, make_generator(work.seed, work.index))
    assigned: List[Tuple[int, bytes]] = []
    for item in work.items:
        record = encode(item)
        assigned.append((partitioner(record).index, record))
    return assigned


def _chunked(
    rows: Iterable[SchemaAndRow], chunk_size: int, seed: int, ratios: SplitRatios
) -> Iterator[ChunkWork]:
    iterator = iter(rows)
    for index in itertools.count():
        items = tuple(itertools.islice(iterator, chunk_size))
        if not items:
            return
        yield ChunkWork(index=index, seed=seed, ratios=ratios, items=items)


_SPLITS_BY_INDEX = {split.index: split for split in Split}


def _assign_serial(
    rows: Iterable[SchemaAndRow], options: ExportOptions, ratios: SplitRatios
) -> Iterator[Tuple[Split, bytes]]:
    partitioner = Partitioner(ratios, make_generator(options.seed))
    for item in rows:
        record = encode(item)
        yield partitioner(record), record


def _assign_parallel(
    rows: Iterable[SchemaAndRow], options: ExportOptions, ratios: SplitRatios
) -> Iterator[Tuple[Split, bytes]]:
    context = mp.get_context("spawn")
    with context.Pool(processes=options.workers) as pool:
        chunks = _chunked(rows, options.chunk_size, options.seed, ratios)
        # imap keeps chunk order, so output order matches input order.
        for assigned in pool.imap(_encode_chunk, chunks):
            for index, record in assigned:
                yield _SPLITS_BY_INDEX[index], record


def run_export(
    options: ExportOptions,
    source: QuerySource,
    storage: Optional[OutputStorage] = None,
) -> ExportResult:
    """
    Run one export and return per-split counts and output locations.

    Shards are written under temporary names and renamed to their final
    names only once every split has been written. A failed run deletes the
    temporary shards and leaves no final-named file behind.

    Parameters
    ----------
    options : ExportOptions
        Query, output location, split percentages and parallelism.
    source : QuerySource
        Where rows are read from.
    storage : OutputStorage | None
        Output backend. Defaults to local/GCS dispatch on the URI scheme.

    Raises
    ------
    InvalidSplitError
        Before any row is read, if the percentages do not sum to 1.
    UnsupportedTypeError
        If a column declares a type the encoder does not support.
    """
    ratios = options.ratios()
    storage = storage or default_storage
    directories = {split: split_directory(options.output_directory, split) for split in Split}
    assign = _assign_parallel if options.workers > 1 else _assign_serial
    writers = {
        split: SplitWriter(
            directories[split],
            suffix=options.output_suffix,
            num_shards=options.num_shards,
            storage=storage,
        )
        for split in Split
    }

    log.info(
        "[EXPORT START]",
        extra={
            "source": source.name,
            "output_directory": options.output_directory,
            "training": ratios.training,
            "testing": ratios.testing,
            "validation": ratios.validation,
            "seed": options.seed,
            "workers": options.workers,
        },
    )

    with profile_block("query-to-tfrecord") as stats:
        try:
            with contextlib.ExitStack() as stack:
                for writer in writers.values():
                    stack.enter_context(writer)
                for split, record in assign(source.rows(options.read_query), options, ratios):
                    writers[split].write(record)
            try:
                for writer in writers.values():
                    writer.commit()
            except BaseException:
                for writer in writers.values():
                    if not writer.committed:
                        writer.discard()
                raise
        except DataflowJobError:
            log.exception("[EXPORT FAILED]", extra={"source": source.name})
            raise

    result = ExportResult(
        counts={split.label: writers[split].records_written for split in Split},
        directories={split.label: directories[split] for split in Split},
        files={split.label: list(writers[split].paths) for split in Split},
        profile=stats.as_dict(),
    )
    for split in Split:
        log.info(
            f"[SPLIT WRITTEN] {split.label}",
            extra={"split": split.label, "records": result.counts[split.label]},
        )
    log.info(
        "[EXPORT COMPLETE]",
        extra={"total_rows": result.total_rows, "duration": stats.duration_seconds},
    )
    return result


__all__ = ["ExportOptions", "ExportResult", "run_export"]
