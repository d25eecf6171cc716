import pytest

from adagio.clock import ManualClock
from adagio.engine import Engine
from adagio.local_store import LocalStore
from adagio.remote_store import MemoryRemoteStore
from adagio.retention import RetentionManager
from adagio.text_gen import TextService

from helpers import T0, UTC, FakeScheduler


@pytest.fixture
def clock():
    return ManualClock(T0)


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def store():
    local = LocalStore()
    yield local
    local.close()


@pytest.fixture
def remote():
    return MemoryRemoteStore()


@pytest.fixture
def text_service():
    return TextService()


@pytest.fixture
def engine(store, scheduler, clock, remote, text_service):
    eng = Engine(
        store,
        scheduler,
        clock=clock,
        remote_store=remote,
        text_service=text_service,
        retention=RetentionManager(3, UTC),
        tz=UTC,
    )
    eng.load()
    return eng


@pytest.fixture
def events(engine):
    """Every (event, payload) the engine publishes, in order."""
    seen = []
    engine.subscribe(lambda event, payload: seen.append((event, payload)))
    return seen
