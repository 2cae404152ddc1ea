"""
TFRecord framing.

Each record on disk is laid out as::

    uint64  length            (little endian)
    uint32  masked_crc32c(length bytes)
    bytes   data[length]
    uint32  masked_crc32c(data)

which is what ``tf.data.TFRecordDataset`` and Beam's ``TFRecordIO`` read.
"""

from __future__ import annotations

import struct
from typing import BinaryIO, Iterator

import google_crc32c

from dataflow_jobs.domain.errors import CorruptRecordError

_MASK_DELTA = 0xA282EAD8
_LENGTH = struct.Struct("<Q")
_CRC = struct.Struct("<I")


def masked_crc32c(data: bytes) -> int:
    crc = google_crc32c.value(data)
    return (((crc >> 15) | (crc << 17)) + _MASK_DELTA) & 0xFFFFFFFF


def frame_record(data: bytes) -> bytes:
    """Wrap one serialized record in its length prefix and checksums."""
    length = _LENGTH.pack(len(data))
    return b"".join(
        (length, _CRC.pack(masked_crc32c(length)), data, _CRC.pack(masked_crc32c(data)))
    )


class TFRecordWriter:
    """
    Write framed records to an open binary stream.

    The writer does not own the stream; closing it is the caller's job.
    """

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self.records_written = 0

    def write(self, data: bytes) -> None:
        self._stream.write(frame_record(data))
        self.records_written += 1


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    chunk = stream.read(size)
    if len(chunk) != size:
        raise CorruptRecordError(f"Truncated record: expected {size} bytes, got {len(chunk)}")
    return chunk


def read_records(stream: BinaryIO) -> Iterator[bytes]:
    """
    Iterate record payloads from a TFRecord stream, verifying both checksums.

    Raises
    ------
    CorruptRecordError
        On a truncated frame or a checksum mismatch.
    """
    while True:
        header = stream.read(_LENGTH.size)
        if not header:
            return
        if len(header) != _LENGTH.size:
            raise CorruptRecordError("Truncated record length header")
        (length_crc,) = _CRC.unpack(_read_exact(stream, _CRC.size))
        if length_crc != masked_crc32c(header):
            raise CorruptRecordError("Length checksum mismatch")
        (length,) = _LENGTH.unpack(header)
        data = _read_exact(stream, length)
        (data_crc,) = _CRC.unpack(_read_exact(stream, _CRC.size))
        if data_crc != masked_crc32c(data):
            raise CorruptRecordError("Data checksum mismatch")
        yield data


__all__ = ["masked_crc32c", "frame_record", "TFRecordWriter", "read_records"]
