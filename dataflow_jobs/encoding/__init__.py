"""
Encoding package: query rows to ``tf.train.Example`` bytes, and TFRecord framing.
"""

from dataflow_jobs.encoding.encoder import build_feature, encode, encode_row, row_to_example
from dataflow_jobs.encoding.tfrecord import TFRecordWriter, frame_record, read_records

__all__ = [
    "build_feature",
    "encode",
    "encode_row",
    "row_to_example",
    "TFRecordWriter",
    "frame_record",
    "read_records",
]
