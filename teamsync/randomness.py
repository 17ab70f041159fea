"""Random-selection primitives shared by the draw and partition engines.

Every function takes an optional ``random.Random`` instance so callers
(and tests) can supply a seeded source. Without one, the module-level
generator from :mod:`random` is used.
"""

import random
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def _source(rng: random.Random | None) -> random.Random:
    # The random module exposes the bound methods of its global generator,
    # so it honours random.seed() and can stand in for a Random instance.
    return rng if rng is not None else random  # type: ignore[return-value]


def shuffled(items: Sequence[T], rng: random.Random | None = None) -> list[T]:
    """Return a uniformly random permutation of ``items`` as a new list.

    Implements the Fisher-Yates shuffle: walking from the last index down
    to 1, each slot is swapped with a uniformly chosen index in ``[0, i]``.
    The input sequence is never modified.

    Args:
        items: The sequence to permute.
        rng: Optional random source.

    Returns:
        A new list containing the same elements in random order.
    """
    source = _source(rng)
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = source.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


def pick_one(items: Sequence[T], rng: random.Random | None = None) -> T:
    """Return one element of ``items`` chosen with probability ``1/len(items)``.

    Raises:
        IndexError: If ``items`` is empty.
    """
    if not items:
        raise IndexError("Cannot pick from an empty sequence")
    return items[_source(rng).randrange(len(items))]


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """Split ``items`` into consecutive chunks of ``size``; the last may be shorter."""
    return [list(items[start : start + size]) for start in range(0, len(items), size)]
