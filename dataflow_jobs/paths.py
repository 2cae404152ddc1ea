"""Output path helpers. Pure string functions, no I/O."""

from __future__ import annotations

from dataflow_jobs.partition import Split


def concat_uri(directory: str, folder: str) -> str:
    """
    Join a directory URI and a subdirectory name with exactly one separator.

    >>> concat_uri("gs://bucket/out", "train/")
    'gs://bucket/out/train/'
    >>> concat_uri("gs://bucket/out/", "train/")
    'gs://bucket/out/train/'
    """
    if directory.endswith("/"):
        return directory + folder
    return directory + "/" + folder


def split_directory(output_directory: str, split: Split) -> str:
    return concat_uri(output_directory, split.subdirectory)


__all__ = ["concat_uri", "split_directory"]
