"""
Shared fixtures for the Number-BATTLE test suite.

The full tablebase is small (450 positions) but building it still walks the
whole move graph, so it is built once per test session and handed out as a
fresh store per test.
"""

import random

import pytest

from _02_agents.outcomes import MoveClassifier
from _02_agents.solver.search import SearchEngine
from _02_agents.tablebase.retrograde import RetrogradeTablebase
from _02_agents.tablebase.storage import TablebaseStore


class ScriptedRandom(random.Random):
    """Random source with a fixed roll; ``randrange`` always picks the first item."""

    def __init__(self, roll=0.0):
        super().__init__(0)
        self.roll = roll

    def random(self):
        return self.roll

    def randrange(self, *args, **kwargs):
        return 0


@pytest.fixture(scope="session")
def tablebase():
    """Fully generated retrograde tablebase."""
    table = RetrogradeTablebase()
    table.generate()
    return table


@pytest.fixture(scope="session")
def entries(tablebase):
    return tablebase.entries()


@pytest.fixture
def store(entries):
    """Loaded store holding the full table."""
    return TablebaseStore.from_entries(entries)


@pytest.fixture
def classifier(store):
    return MoveClassifier(store, SearchEngine())


@pytest.fixture
def scripted_rng():
    return ScriptedRandom
