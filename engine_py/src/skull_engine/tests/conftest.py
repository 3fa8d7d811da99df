import pytest

from skull_engine.engine import SkullGame
from skull_engine.tests.helpers import FakeScheduler, Recorder


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def events():
    return Recorder()


@pytest.fixture
def lobby(scheduler, events):
    """An empty room with a manual clock."""
    return SkullGame(room_id="TEST", scheduler=scheduler, on_event=events.append, seed=1)
