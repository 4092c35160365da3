"""Shared test fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from uniadmin.cache.hierarchy_cache import InMemoryHierarchyCache
from uniadmin.cache.tree_cache import HierarchyTreeCache
from uniadmin.db.base import Base
# Import all models to register with Base.metadata
import uniadmin.db.models  # noqa: F401
from uniadmin.events.dispatcher import InProcessEventDispatcher
from uniadmin.events.hierarchy_events import ALL_EVENT_TYPES
from uniadmin.repositories.org_unit_repo import SqlOrganizationalUnitRepository
from uniadmin.services.organizational.hierarchy_service import OrganizationalHierarchyService
from uniadmin.services.organizational.locks import UnitLocks
from uniadmin.services.organizational.unit_management import UnitManagementService
from uniadmin.services.tokens import make_tokens


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Create a test database session."""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


# ── Hierarchy core wired against the test database ────────────────────────────

@pytest.fixture
def repository(db_session):
    return SqlOrganizationalUnitRepository(db_session)


@pytest.fixture
def tree_cache():
    return HierarchyTreeCache()


@pytest.fixture
def external_cache():
    return InMemoryHierarchyCache()


@pytest.fixture
def hierarchy_service(repository, tree_cache, external_cache):
    return OrganizationalHierarchyService(repository, tree_cache, external_cache)


@pytest.fixture
def recorded_events():
    """Events captured by a listener on the test dispatcher, in dispatch order."""
    return []


@pytest.fixture
def dispatcher(recorded_events):
    _dispatcher = InProcessEventDispatcher()
    for event_class in ALL_EVENT_TYPES:
        _dispatcher.add_listener(event_class, recorded_events.append)
    return _dispatcher


@pytest.fixture
def management_service(repository, hierarchy_service, dispatcher):
    return UnitManagementService(repository, hierarchy_service, dispatcher, UnitLocks(), max_depth=10)


# ── HTTP ──────────────────────────────────────────────────────────────────────

@pytest.fixture
def app(db_engine):
    """Create a test application instance with in-memory DB."""
    from uniadmin.main import create_app

    _app = create_app()
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    _app.state.db_engine = db_engine
    _app.state.db_session_factory = session_factory
    _app.state.redis = None
    _app.state.event_dispatcher.clear_listeners()
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def _bearer(user_id: str, roles: list[str]) -> dict[str, str]:
    access_token, _ = make_tokens(user_id, roles, f"{user_id}@uni.test")
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def admin_headers():
    return _bearer("usr_admin", ["admin"])


@pytest.fixture
def org_admin_headers():
    return _bearer("usr_orgadmin", ["organizational_admin"])


@pytest.fixture
def viewer_headers():
    return _bearer("usr_viewer", ["viewer"])
