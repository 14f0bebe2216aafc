"""API test fixtures: the real app with fake collaborators on app.state.

Invariants:
    - The lifespan never runs; registry and transcript store are installed directly
    - Transcripts are written to a per-test temporary directory
"""

import pytest
from httpx import ASGITransport, AsyncClient

from coach.infrastructure.transcript_store import LocalTranscriptStore
from coach.main import create_app
from coach.services.conversation_registry import ConversationFactory, ConversationRegistry
from tests.services.fakes import FakePersistence, FakeScorer, FakeTransport


class Collaborators:
    def __init__(self, tmp_path):
        self.scorer = FakeScorer()
        self.persistence = FakePersistence()
        self.store = LocalTranscriptStore(tmp_path, "/api/v1/transcripts")
        self.transports: list[FakeTransport] = []
        self.fail_transport = False

    def transport_factory(self, agent_id: str) -> FakeTransport:
        transport = FakeTransport(fail=self.fail_transport)
        self.transports.append(transport)
        return transport


@pytest.fixture
def fakes(tmp_path):
    return Collaborators(tmp_path)


@pytest.fixture
async def app(fakes):
    app = create_app()
    app.state.transcript_store = fakes.store
    app.state.registry = ConversationRegistry(ConversationFactory(
        scorer=fakes.scorer,
        persistence=fakes.persistence,
        transcript_store=fakes.store,
        transport_factory=fakes.transport_factory,
        warning_seconds=300,
    ))
    yield app
    await app.state.registry.close()


@pytest.fixture
async def client(app):
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
        headers={"Authorization": "Bearer test-token", "X-User-Id": "user-1"},
    ) as c:
        yield c


@pytest.fixture
def other_user():
    return {"Authorization": "Bearer other-token", "X-User-Id": "user-2"}
