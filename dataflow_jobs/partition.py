"""
Train/test/validation split of encoded records.

Every record draws one uniform value ``d`` from a seeded generator and lands in:

- TRAIN       if d < training
- TEST        if training <= d < training + testing
- VALIDATION  otherwise

The percentages must add up to exactly 1. The check runs before the draw on
every assignment, so a bad configuration fails without consuming the
generator.

Reproducibility depends on who owns the generator:

- one generator seeded with ``seed`` and used serially gives identical
  assignments for identical input order;
- ``make_generator(seed, stream)`` derives an independent, deterministic
  generator per chunk of input, which the parallel export uses so results do
  not depend on how many workers ran or how they were scheduled.
"""

from __future__ import annotations

import enum
import math
import random
from typing import Optional, Protocol

from pydantic import BaseModel, ConfigDict, model_validator

from dataflow_jobs.domain.errors import InvalidSplitError


class Split(enum.Enum):
    TRAIN = "train/"
    TEST = "test/"
    VALIDATION = "val/"

    @property
    def subdirectory(self) -> str:
        return self.value

    @property
    def index(self) -> int:
        return _SPLIT_ORDER.index(self)

    @property
    def label(self) -> str:
        return self.name.lower()


_SPLIT_ORDER = (Split.TRAIN, Split.TEST, Split.VALIDATION)


class UniformGenerator(Protocol):
    def random(self) -> float: ...


def validate_split(training: float, testing: float, validation: float) -> None:
    """
    Raise ``InvalidSplitError`` unless the three percentages sum to exactly 1.

    ``math.fsum`` returns the correctly rounded sum, so e.g. 0.7 + 0.2 + 0.1
    passes regardless of summation order while 0.6 + 0.1 + 0.1 does not.
    """
    if math.fsum((training, testing, validation)) != 1.0:
        raise InvalidSplitError(training, testing, validation)


class SplitRatios(BaseModel):
    """
    The share of records routed to each split.

    The sum is checked first, so any set of values that does not add up to 1
    raises ``InvalidSplitError``. Values that do sum to 1 but fall outside
    0..1 fail pydantic validation.
    """

    training: float = 1.0
    testing: float = 0.0
    validation: float = 0.0

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check(self) -> "SplitRatios":
        self.validate_sum()
        for name in ("training", "testing", "validation"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0 and 1, got {value}")
        return self

    def validate_sum(self) -> None:
        validate_split(self.training, self.testing, self.validation)


def assign_split(rng: UniformGenerator, ratios: SplitRatios) -> Split:
    """
    Draw once from ``rng`` and return the split the draw falls in.
    """
    ratios.validate_sum()
    d = rng.random()
    if d < ratios.training:
        return Split.TRAIN
    if d < ratios.training + ratios.testing:
        return Split.TEST
    return Split.VALIDATION


def partition_index(rng: UniformGenerator, ratios: SplitRatios) -> int:
    """Same as ``assign_split`` but returns the partition number 0, 1 or 2."""
    return assign_split(rng, ratios).index


def make_generator(seed: int, stream: Optional[int] = None) -> random.Random:
    """
    Build a deterministic generator.

    Without ``stream`` this is simply ``random.Random(seed)``. With a stream
    number, the seed is derived from both values so each stream is
    independent yet reproducible.
    """
    if stream is None:
        return random.Random(seed)
    return random.Random(f"{seed}:{stream}")


class Partitioner:
    """
    Assign records to splits with one owned generator.

    Not safe to share across threads: each call advances the generator by
    one draw, and interleaved draws change the assignment.
    """

    def __init__(self, ratios: SplitRatios, rng: UniformGenerator) -> None:
        ratios.validate_sum()
        self.ratios = ratios
        self._rng = rng

    def __call__(self, record: bytes) -> Split:
        del record  # assignment depends only on the draw
        return assign_split(self._rng, self.ratios)


__all__ = [
    "Split",
    "SplitRatios",
    "UniformGenerator",
    "validate_split",
    "assign_split",
    "partition_index",
    "make_generator",
    "Partitioner",
]
