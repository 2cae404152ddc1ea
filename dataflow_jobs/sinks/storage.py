"""
Output storage backends.

``gs://bucket/key`` URIs are written through ``google-cloud-storage``
resumable uploads; anything else is treated as a local path whose parent
directories are created on demand.

Besides opening a write stream, a backend can rename and delete objects.
Shards are first written under a temporary name and only renamed to their
final name once the whole export has succeeded.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import BinaryIO, Optional, Protocol, Tuple

from google.api_core.exceptions import NotFound
from google.cloud import storage

from dataflow_jobs.domain.errors import ConfigurationError

_GCS_SCHEME = "gs://"


class OutputStorage(Protocol):
    def open(self, uri: str) -> BinaryIO:
        """Open ``uri`` as a binary write stream, replacing any existing object."""
        ...

    def rename(self, source: str, destination: str) -> None:
        ...

    def delete(self, uri: str) -> None:
        """Remove ``uri``; a missing object is not an error."""
        ...


def parse_gcs_uri(uri: str) -> Tuple[str, str]:
    """Split ``gs://bucket/path/to/object`` into ``("bucket", "path/to/object")``."""
    if not uri.startswith(_GCS_SCHEME):
        raise ConfigurationError(f"Not a Cloud Storage URI: {uri}")
    bucket, _, key = uri[len(_GCS_SCHEME):].partition("/")
    if not bucket or not key:
        raise ConfigurationError(f"Cloud Storage URI needs a bucket and an object name: {uri}")
    return bucket, key


class LocalStorage:
    def open(self, uri: str) -> BinaryIO:
        path = Path(uri)
        path.parent.mkdir(parents=True, exist_ok=True)
        return path.open("wb")

    def rename(self, source: str, destination: str) -> None:
        os.replace(source, destination)

    def delete(self, uri: str) -> None:
        Path(uri).unlink(missing_ok=True)


class GcsStorage:
    """Cloud Storage objects. The client is created lazily."""

    def __init__(
        self, client: Optional[storage.Client] = None, project: Optional[str] = None
    ) -> None:
        self._client = client
        self._project = project

    @property
    def client(self) -> storage.Client:
        if self._client is None:
            self._client = storage.Client(project=self._project)
        return self._client

    def _blob(self, uri: str):
        bucket_name, key = parse_gcs_uri(uri)
        bucket = self.client.bucket(bucket_name)
        return bucket, bucket.blob(key)

    def open(self, uri: str) -> BinaryIO:
        _, blob = self._blob(uri)
        return blob.open("wb")

    def rename(self, source: str, destination: str) -> None:
        bucket, blob = self._blob(source)
        destination_bucket, destination_key = parse_gcs_uri(destination)
        if destination_bucket != bucket.name:
            raise ConfigurationError(
                f"Cannot rename across buckets: {source} -> {destination}"
            )
        bucket.rename_blob(blob, destination_key)

    def delete(self, uri: str) -> None:
        _, blob = self._blob(uri)
        try:
            blob.delete()
        except NotFound:
            pass


class SchemeStorage:
    """
    Dispatch on the URI scheme: ``gs://`` goes to Cloud Storage, the rest to
    the local filesystem.
    """

    def __init__(
        self, gcs: Optional[GcsStorage] = None, local: Optional[LocalStorage] = None
    ) -> None:
        self.gcs = gcs or GcsStorage()
        self.local = local or LocalStorage()

    def _backend(self, uri: str) -> OutputStorage:
        return self.gcs if uri.startswith(_GCS_SCHEME) else self.local

    def open(self, uri: str) -> BinaryIO:
        return self._backend(uri).open(uri)

    def rename(self, source: str, destination: str) -> None:
        self._backend(source).rename(source, destination)

    def delete(self, uri: str) -> None:
        self._backend(uri).delete(uri)


default_storage: OutputStorage = SchemeStorage()


__all__ = [
    "OutputStorage",
    "LocalStorage",
    "GcsStorage",
    "SchemeStorage",
    "default_storage",
    "parse_gcs_uri",
]
