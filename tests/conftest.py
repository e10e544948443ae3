import random

import pytest
from PySide6.QtCore import QCoreApplication

from tictactoe.config import GameConfig
from tictactoe.game_logic import GameLogic
from tictactoe.remote_store import MemoryStore


@pytest.fixture(scope="session", autouse=True)
def qapp():
    """QTimer and queued signals need an application object; no display required."""
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


class ManualScheduler:
    """Stands in for MoveScheduler; tests fire the deferred move by hand."""

    def __init__(self):
        self.callback = None
        self.scheduled = 0

    @property
    def is_pending(self):
        return self.callback is not None

    def schedule(self, callback):
        self.scheduled += 1
        self.callback = callback

    def cancel(self):
        self.callback = None

    def run_pending(self):
        callback, self.callback = self.callback, None
        assert callback is not None, "nothing scheduled"
        callback()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def game(scheduler):
    return GameLogic(config=GameConfig(player_id="local"), scheduler=scheduler,
                     rng=random.Random(7))


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def make_player(store):
    """Factory for peers sharing one in-memory store."""
    def _make(player_id):
        return GameLogic(store=store, config=GameConfig(player_id=player_id),
                         scheduler=ManualScheduler())
    return _make
