"""Shared fixtures for TeamSync tests."""

import random
from collections.abc import Callable

import pytest

from teamsync.models import Participant


@pytest.fixture()
def make_roster() -> Callable[[int], list[Participant]]:
    """Return a factory building rosters of ``size`` participants with predictable ids."""

    def _make(size: int) -> list[Participant]:
        return [Participant(id=f"p{index}", name=f"Person {index}") for index in range(size)]

    return _make


@pytest.fixture()
def sample_roster() -> list[Participant]:
    """Return a small roster, including two people who share a name."""
    return [
        Participant(id="a1", name="Alice"),
        Participant(id="b2", name="Bob"),
        Participant(id="c3", name="Charlie"),
        Participant(id="d4", name="Diana"),
        Participant(id="e5", name="alice"),
    ]


@pytest.fixture()
def rng() -> random.Random:
    """Return a seeded random source for reproducible draws and shuffles."""
    return random.Random(42)
