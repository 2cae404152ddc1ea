"""
Sharded TFRecord output for one split directory.

Files are named ``<directory>output-SSSSS-of-NNNNN<suffix>``, the default
naming Beam's ``FileIO.write()`` uses, and records are spread round-robin
over the shards.

Shards are written under ``<directory>.tmp-output-...`` first. Leaving the
writer on an exception deletes the temporary files; ``commit()`` renames them
to their final names. The export runner commits only after every split has
been written, so a failed run leaves no final-named file behind. All shards
are created up front, so a successful empty split still leaves its directory
and files for downstream readers.
"""

from __future__ import annotations

import contextlib
from typing import List, Optional

from dataflow_jobs.encoding.tfrecord import TFRecordWriter
from dataflow_jobs.sinks.storage import OutputStorage, default_storage
from dataflow_jobs.utils.logging import get_logger

log = get_logger(__name__)

_TEMP_PREFIX = ".tmp-"


def shard_name(directory: str, index: int, num_shards: int, suffix: str) -> str:
    return f"{directory}output-{index:05d}-of-{num_shards:05d}{suffix}"


def temp_shard_name(directory: str, index: int, num_shards: int, suffix: str) -> str:
    return f"{directory}{_TEMP_PREFIX}output-{index:05d}-of-{num_shards:05d}{suffix}"


class SplitWriter:
    """
    Context manager writing framed records into the shard files of one directory.

    Example
    -------
        with SplitWriter("gs://bucket/out/train/", ".tfrecord") as writer:
            writer.write(example_bytes)
        writer.commit()
    """

    def __init__(
        self,
        directory: str,
        suffix: str = ".tfrecord",
        num_shards: int = 1,
        storage: Optional[OutputStorage] = None,
    ) -> None:
        if num_shards < 1:
            raise ValueError(f"num_shards must be >= 1, got {num_shards}")
        self.directory = directory
        self.suffix = suffix
        self.num_shards = num_shards
        self._storage = storage or default_storage
        self._stack: Optional[contextlib.ExitStack] = None
        self._writers: List[TFRecordWriter] = []
        self._next_shard = 0
        self.paths = [shard_name(directory, i, num_shards, suffix) for i in range(num_shards)]
        self.temp_paths = [
            temp_shard_name(directory, i, num_shards, suffix) for i in range(num_shards)
        ]
        self.committed = False

    def __enter__(self) -> "SplitWriter":
        stack = contextlib.ExitStack()
        try:
            for path in self.temp_paths:
                stream = stack.enter_context(self._storage.open(path))
                self._writers.append(TFRecordWriter(stream))
        except BaseException:
            stack.close()
            self.discard()
            raise
        self._stack = stack
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._stack is not None:
            try:
                self._stack.close()
            finally:
                self._stack = None
                if exc_type is not None:
                    self.discard()
        log.debug(
            "Closed split output",
            extra={"directory": self.directory, "records": self.records_written},
        )

    def write(self, data: bytes) -> None:
        if self._stack is None:
            raise RuntimeError("SplitWriter must be entered before writing")
        self._writers[self._next_shard].write(data)
        self._next_shard = (self._next_shard + 1) % self.num_shards

    def commit(self) -> None:
        """Rename the closed temporary shards to their final names."""
        if self._stack is not None:
            raise RuntimeError("SplitWriter must be closed before commit")
        for temp_path, path in zip(self.temp_paths, self.paths):
            self._storage.rename(temp_path, path)
        self.committed = True

    def discard(self) -> None:
        """Delete the temporary shards."""
        for temp_path in self.temp_paths:
            self._storage.delete(temp_path)

    @property
    def records_written(self) -> int:
        return sum(writer.records_written for writer in self._writers)


__all__ = ["SplitWriter", "shard_name", "temp_shard_name"]
