from __future__ import annotations

from typing import MutableSequence, TypeVar

import numpy as np

T = TypeVar("T")


def shuffle_records(records: MutableSequence[T], rng: np.random.Generator) -> None:
    """Fisher-Yates shuffle in place; the same generator state gives the same order."""
    for i in range(len(records) - 1, 0, -1):
        j = int(rng.integers(0, i + 1))
        records[i], records[j] = records[j], records[i]
