"""Tests for teamsync.randomness module."""

import itertools
import random
from collections import Counter

import pytest

from teamsync.randomness import chunked, pick_one, shuffled

# Chi-squared critical value for 5 degrees of freedom at p = 0.001.
_CHI2_CRITICAL_DF5 = 20.515


def _chi_squared(observed: Counter[tuple[str, ...]], outcomes: list[tuple[str, ...]], trials: int) -> float:
    expected = trials / len(outcomes)
    return sum((observed[outcome] - expected) ** 2 / expected for outcome in outcomes)


# ---------------------------------------------------------------------------
# shuffled
# ---------------------------------------------------------------------------


class TestShuffled:
    """Tests for the Fisher-Yates shuffle."""

    def test_empty(self) -> None:
        """Return an empty list for an empty input."""
        assert shuffled([]) == []

    def test_single_item(self) -> None:
        """Return a one-element list unchanged."""
        assert shuffled(["only"]) == ["only"]

    def test_is_permutation(self, rng: random.Random) -> None:
        """Keep exactly the same elements."""
        items = list(range(50))
        result = shuffled(items, rng)
        assert sorted(result) == items

    def test_does_not_mutate_input(self, rng: random.Random) -> None:
        """Leave the input sequence untouched."""
        items = [1, 2, 3, 4, 5]
        shuffled(items, rng)
        assert items == [1, 2, 3, 4, 5]

    def test_reproducible_with_seed(self) -> None:
        """Produce the same order from identically seeded sources."""
        items = list("abcdefgh")
        assert shuffled(items, random.Random(7)) == shuffled(items, random.Random(7))

    def test_uses_module_random_when_no_source(self) -> None:
        """Honour random.seed() when no source is passed."""
        items = list(range(10))
        random.seed(3)
        first = shuffled(items)
        random.seed(3)
        assert shuffled(items) == first

    def test_swaps_with_index_in_closed_range(self) -> None:
        """Draw each swap index from [0, i], walking i from last to 1."""
        calls: list[tuple[int, int]] = []

        class _RecordingRandom(random.Random):
            def randint(self, a: int, b: int) -> int:
                calls.append((a, b))
                return a

        shuffled([1, 2, 3, 4], _RecordingRandom())
        assert calls == [(0, 3), (0, 2), (0, 1)]

    def test_permutations_are_uniform(self) -> None:
        """Every permutation of a 3-element roster occurs with about equal frequency."""
        source = random.Random(2024)
        items = ("a", "b", "c")
        outcomes = list(itertools.permutations(items))
        trials = 12_000

        observed = Counter(tuple(shuffled(items, source)) for _ in range(trials))

        assert set(observed) == set(outcomes)
        assert _chi_squared(observed, outcomes, trials) < _CHI2_CRITICAL_DF5


# ---------------------------------------------------------------------------
# pick_one
# ---------------------------------------------------------------------------


class TestPickOne:
    """Tests for uniform single-item selection."""

    def test_returns_member(self, rng: random.Random) -> None:
        """Return an element of the input."""
        assert pick_one(["x", "y", "z"], rng) in {"x", "y", "z"}

    def test_empty_raises(self) -> None:
        """Raise IndexError for an empty sequence."""
        with pytest.raises(IndexError):
            pick_one([])

    def test_roughly_uniform(self) -> None:
        """Hit every element with roughly equal frequency."""
        source = random.Random(11)
        counts = Counter(pick_one("abcd", source) for _ in range(8_000))
        assert set(counts) == set("abcd")
        assert all(1_700 < count < 2_300 for count in counts.values())


# ---------------------------------------------------------------------------
# chunked
# ---------------------------------------------------------------------------


class TestChunked:
    """Tests for consecutive chunking."""

    def test_exact_multiple(self) -> None:
        """Split evenly when the length is a multiple of the size."""
        assert chunked([1, 2, 3, 4, 5, 6], 3) == [[1, 2, 3], [4, 5, 6]]

    def test_short_last_chunk(self) -> None:
        """Leave the remainder in a shorter final chunk."""
        assert chunked([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]

    def test_size_larger_than_input(self) -> None:
        """Produce a single chunk when size exceeds the length."""
        assert chunked([1, 2], 10) == [[1, 2]]

    def test_empty(self) -> None:
        """Produce no chunks for an empty input."""
        assert chunked([], 3) == []
