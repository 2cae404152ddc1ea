"""
Exception types raised by the dataflow jobs. All of them are fatal to a run.

Errors raised inside export worker processes are pickled back to the parent,
so errors built from raw values rebuild themselves from those values.
"""

from __future__ import annotations


class DataflowJobError(Exception):
    """Base exception for the project."""


class ConfigurationError(DataflowJobError):
    """Raised when job configuration is invalid or incomplete."""


class UnsupportedTypeError(DataflowJobError):
    """Raised when a schema field declares a type the encoder cannot handle."""

    def __init__(self, type_name: str) -> None:
        super().__init__(f"Unsupported type: {type_name}")
        self.type_name = type_name

    def __reduce__(self):
        return (type(self), (self.type_name,))


class InvalidSplitError(DataflowJobError):
    """Raised when train/test/validation percentages do not add up to 1."""

    def __init__(self, training: float, testing: float, validation: float) -> None:
        super().__init__(
            f"Train {training:.2f}, Test {testing:.2f}, Validation {validation:.2f} "
            "percentages must add up to 100 percent"
        )
        self.training = training
        self.testing = testing
        self.validation = validation

    def __reduce__(self):
        return (type(self), (self.training, self.testing, self.validation))


class CorruptRecordError(DataflowJobError):
    """Raised when a TFRecord frame fails its length or payload checksum."""


__all__ = [
    "DataflowJobError",
    "ConfigurationError",
    "UnsupportedTypeError",
    "InvalidSplitError",
    "CorruptRecordError",
]
