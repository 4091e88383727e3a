"""Service test fixtures — stores, audit sinks, MutationService and FastAPI test client.

Invariants:
    - Every test gets fresh stores (memory) or a fresh in-memory SQLite database
    - Ids from the service are deterministic (id-1, id-2, ...)
    - The API client talks to the real app with get_mutation_service overridden

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for store and route tests
      (PostgreSQL-specific features are not used by the store)
    - Lifespan is not run by ASGITransport: the service comes from the override,
      never from settings
"""

import itertools

import pytest
from httpx import ASGITransport, AsyncClient

from rulebook.api.routes.resources import get_mutation_service
from rulebook.db.session import create_schema
from rulebook.infrastructure.audit_sinks import InMemoryAuditSink
from rulebook.infrastructure.database import DatabaseSessionManager
from rulebook.infrastructure.memory_store import InMemoryResourceStore
from rulebook.main import app
from rulebook.services.mutation_service import MutationService


def _id_factory():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def memory_store() -> InMemoryResourceStore:
    return InMemoryResourceStore()


@pytest.fixture
def audit_sink() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def service(memory_store, audit_sink, clock) -> MutationService:
    return MutationService(memory_store, audit_sink, clock, id_factory=_id_factory())


@pytest.fixture
async def db_manager():
    manager = DatabaseSessionManager("sqlite+aiosqlite:///:memory:")
    await create_schema(manager.engine)
    yield manager
    await manager.dispose()


@pytest.fixture
async def client(service):
    """FastAPI test client bound to the memory-backed service."""
    app.dependency_overrides[get_mutation_service] = lambda: service
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c
    app.dependency_overrides.clear()

