"""
Query row to ``tf.train.Example`` encoding.

Each schema field present in a row becomes one feature keyed by the column
name. The declared type picks a ``FieldEncoding`` variant, and the variant's
encoder writes either the single scalar or every element of a repeated value
into the matching list of the ``Feature``:

- STRING / TIME / DATE      -> bytes_list (UTF-8 of ``str(value)``)
- BYTES                     -> bytes_list (raw bytes, scalar only)
- INTEGER / INT64 / TIMESTAMP -> int64_list
- FLOAT / FLOAT64           -> float_list (narrowed to float32)
- BOOLEAN / BOOL            -> int64_list (1 / 0)

Null or missing values produce no feature at all.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Mapping

from dataflow_jobs.domain.schema import FieldEncoding, FieldType, SchemaAndRow, TableSchema
from dataflow_jobs.encoding.example_proto import Example, Feature


def _is_repeated(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _elements(value: Any) -> Iterable[Any]:
    return value if _is_repeated(value) else (value,)


def _encode_string_like(value: Any, feature: Feature) -> None:
    feature.bytes_list.value.extend(str(item).encode("utf-8") for item in _elements(value))


def _encode_bytes(value: Any, feature: Feature) -> None:
    # Repeated BYTES columns are not supported; the value is taken as one blob.
    feature.bytes_list.value.append(bytes(value))


def _encode_integer(value: Any, feature: Feature) -> None:
    feature.int64_list.value.extend(int(item) for item in _elements(value))


def _encode_float(value: Any, feature: Feature) -> None:
    feature.float_list.value.extend(float(item) for item in _elements(value))


def _encode_boolean(value: Any, feature: Feature) -> None:
    feature.int64_list.value.extend(1 if item else 0 for item in _elements(value))


_ENCODERS: Dict[FieldEncoding, Callable[[Any, Feature], None]] = {
    FieldEncoding.STRING_LIKE: _encode_string_like,
    FieldEncoding.BYTES: _encode_bytes,
    FieldEncoding.INTEGER: _encode_integer,
    FieldEncoding.FLOAT: _encode_float,
    FieldEncoding.BOOLEAN: _encode_boolean,
}

_missing = set(FieldEncoding) - set(_ENCODERS)
if _missing:  # pragma: no cover - guards additions to FieldEncoding
    raise RuntimeError(f"No encoder registered for {sorted(e.name for e in _missing)}")


def build_feature(value: Any, type_name: str) -> Feature:
    """
    Build a single ``Feature`` from a non-null column value.

    Raises
    ------
    UnsupportedTypeError
        If ``type_name`` is not a supported column type.
    """
    encoding = FieldType.parse(type_name).encoding
    feature = Feature()
    _ENCODERS[encoding](value, feature)
    return feature


def row_to_example(schema: TableSchema, row: Mapping[str, Any]) -> Example:
    """
    Build an ``Example`` from one row, walking the schema in column order.
    """
    example = Example()
    features = example.features.feature
    for field in schema:
        value = row.get(field.name)
        if value is None:
            continue
        feature = build_feature(value, field.type)
        features[field.name].CopyFrom(feature)
    return example


def encode_row(schema: TableSchema, row: Mapping[str, Any]) -> bytes:
    """Serialize one row to ``tf.train.Example`` wire bytes."""
    return row_to_example(schema, row).SerializeToString()


def encode(item: SchemaAndRow) -> bytes:
    """Per-element entry point used by the export runner."""
    return encode_row(item.table_schema, item.row)


__all__ = ["build_feature", "row_to_example", "encode_row", "encode"]
