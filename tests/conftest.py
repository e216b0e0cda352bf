import pytest
from fastapi.testclient import TestClient

from chatcache.core.settings import Settings
from chatcache.core.store import Message, Role, SessionStore
from chatcache.llm.engine import EngineMetadata, EngineResult
from chatcache.main import create_app


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeEngine:
    """Echoes the latest human turn and records every history it was given."""

    def __init__(self):
        self.calls = []
        self.metadata = EngineMetadata()
        self.error = None
        self.on_invoke = None

    def invoke(self, history):
        self.calls.append(list(history))
        if self.on_invoke is not None:
            self.on_invoke(history)
        if self.error is not None:
            raise self.error
        return EngineResult(
            reply=Message(role=Role.AGENT, content=f"echo: {history[-1].content}"),
            metadata=self.metadata,
        )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return SessionStore(ttl_seconds=30 * 60, max_sessions=1000, clock=clock)


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def app(settings, fake_engine, clock):
    return create_app(settings, engine=fake_engine, clock=clock)


@pytest.fixture
def client(app):
    return TestClient(app)
