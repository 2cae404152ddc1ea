"""
``tf.train.Example`` message classes without a TensorFlow dependency.

The descriptors mirror ``tensorflow/core/example/example.proto`` and
``feature.proto`` (package ``tensorflow``, proto3, upstream field numbers), so
bytes produced here parse with ``tf.train.Example.FromString`` and vice
versa. They are registered in a private descriptor pool to avoid clashing
with TensorFlow's own registration when both are imported.
"""

from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

_PACKAGE = "tensorflow"

_Field = descriptor_pb2.FieldDescriptorProto


def _list_message(name: str, value_type: int) -> descriptor_pb2.DescriptorProto:
    message = descriptor_pb2.DescriptorProto(name=name)
    field = message.field.add(name="value", number=1, label=_Field.LABEL_REPEATED, type=value_type)
    if value_type != _Field.TYPE_BYTES:
        field.options.packed = True
    return message


def _feature_message() -> descriptor_pb2.DescriptorProto:
    message = descriptor_pb2.DescriptorProto(name="Feature")
    message.oneof_decl.add(name="kind")
    for number, (field_name, type_name) in enumerate(
        (("bytes_list", "BytesList"), ("float_list", "FloatList"), ("int64_list", "Int64List")),
        start=1,
    ):
        message.field.add(
            name=field_name,
            number=number,
            label=_Field.LABEL_OPTIONAL,
            type=_Field.TYPE_MESSAGE,
            type_name=f".{_PACKAGE}.{type_name}",
            oneof_index=0,
        )
    return message


def _features_message() -> descriptor_pb2.DescriptorProto:
    message = descriptor_pb2.DescriptorProto(name="Features")
    entry = message.nested_type.add(name="FeatureEntry")
    entry.options.map_entry = True
    entry.field.add(name="key", number=1, label=_Field.LABEL_OPTIONAL, type=_Field.TYPE_STRING)
    entry.field.add(
        name="value",
        number=2,
        label=_Field.LABEL_OPTIONAL,
        type=_Field.TYPE_MESSAGE,
        type_name=f".{_PACKAGE}.Feature",
    )
    message.field.add(
        name="feature",
        number=1,
        label=_Field.LABEL_REPEATED,
        type=_Field.TYPE_MESSAGE,
        type_name=f".{_PACKAGE}.Features.FeatureEntry",
    )
    return message


def _example_message() -> descriptor_pb2.DescriptorProto:
    message = descriptor_pb2.DescriptorProto(name="Example")
    message.field.add(
        name="features",
        number=1,
        label=_Field.LABEL_OPTIONAL,
        type=_Field.TYPE_MESSAGE,
        type_name=f".{_PACKAGE}.Features",
    )
    return message


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="dataflow_jobs/tensorflow/example.proto",
        package=_PACKAGE,
        syntax="proto3",
    )
    file_proto.message_type.extend(
        [
            _list_message("BytesList", _Field.TYPE_BYTES),
            _list_message("FloatList", _Field.TYPE_FLOAT),
            _list_message("Int64List", _Field.TYPE_INT64),
            _feature_message(),
            _features_message(),
            _example_message(),
        ]
    )
    return file_proto


_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(_build_file().SerializeToString())


def _message_class(name: str):
    return message_factory.GetMessageClass(_POOL.FindMessageTypeByName(f"{_PACKAGE}.{name}"))


BytesList = _message_class("BytesList")
FloatList = _message_class("FloatList")
Int64List = _message_class("Int64List")
Feature = _message_class("Feature")
Features = _message_class("Features")
Example = _message_class("Example")


__all__ = ["BytesList", "FloatList", "Int64List", "Feature", "Features", "Example"]
