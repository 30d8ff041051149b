from datetime import date, timedelta
from typing import AsyncGenerator, Awaitable, Callable, Dict

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from taskflow.auth import services as auth_services
from taskflow.auth.models import Credential
from taskflow.auth.schemas import Actor
from taskflow.db.dependencies import get_db_session
from taskflow.db.meta import meta
from taskflow.db.models import load_all_models
from taskflow.web.application import get_app
from taskflow.workflow import services
from taskflow.workflow.enums import Role
from taskflow.workflow.models import Project, Task, TeamMember


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """
    Backend for anyio pytest plugin.

    :return: backend name.
    """
    return "asyncio"


@pytest.fixture
async def _engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test."""
    load_all_models()
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(meta.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
async def dbsession(_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session


# ---- identities ----
@pytest.fixture
def staff() -> Actor:
    return Actor(name="Sam Staff", email="sam@company.com", role=Role.STAFF)


@pytest.fixture
def other_staff() -> Actor:
    return Actor(name="Olivia Other", email="olivia@company.com", role=Role.STAFF)


@pytest.fixture
def admin() -> Actor:
    return Actor(name="Adam Admin", email="adam@company.com", role=Role.ADMIN)


@pytest.fixture
def superadmin() -> Actor:
    return Actor(name="Sue Super", email="sue@company.com", role=Role.SUPERADMIN)


@pytest.fixture
async def roster(dbsession: AsyncSession) -> Dict[str, TeamMember]:
    """Two assignable doers, one inactive member and one non-doer."""
    members = {
        "sam": TeamMember(
            name="Sam Staff", email="sam@company.com", job_role="Engineer",
        ),
        "olivia": TeamMember(
            name="Olivia Other", email="olivia@company.com", job_role="Designer",
        ),
        "ivan": TeamMember(
            name="Ivan Inactive",
            email="ivan@company.com",
            job_role="Engineer",
            is_active=False,
        ),
        "nora": TeamMember(
            name="Nora Manager",
            email="nora@company.com",
            job_role="Manager",
            is_doer=False,
        ),
    }
    for member in members.values():
        dbsession.add(member)
        await dbsession.flush()
    return members


@pytest.fixture
async def project(dbsession: AsyncSession) -> Project:
    project = Project(name="Website relaunch", color="#3366FF")
    dbsession.add(project)
    await dbsession.flush()
    return project


@pytest.fixture
def due() -> date:
    return date.today() + timedelta(days=7)


@pytest.fixture
def make_task(
    dbsession: AsyncSession,
    admin: Actor,
    roster: Dict[str, TeamMember],
    due: date,
) -> Callable[..., Awaitable[Task]]:
    """Create a task through the engine, assigned to Sam unless overridden."""

    async def _make(**overrides) -> Task:
        fields = {
            "title": "Write release notes",
            "description": "Summarise the changes for 2.4",
            "assigned_to": "sam@company.com",
            "due_date": due,
        }
        fields.update(overrides)
        actor = fields.pop("actor", admin)
        return await services.create_task(dbsession, actor, **fields)

    return _make


# ---- HTTP ----
@pytest.fixture
def fastapi_app(dbsession: AsyncSession) -> FastAPI:
    application = get_app()

    async def _override_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield dbsession

    application.dependency_overrides[get_db_session] = _override_db_session
    return application


@pytest.fixture
async def client(fastapi_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def credentials(
    dbsession: AsyncSession,
    staff: Actor,
    other_staff: Actor,
    admin: Actor,
    superadmin: Actor,
) -> Dict[str, Credential]:
    """One login per actor fixture, all with OTP 246810."""
    creds = {}
    for key, actor, prefix in (
        ("staff", staff, "STF"),
        ("other_staff", other_staff, "STF"),
        ("admin", admin, "ADM"),
        ("superadmin", superadmin, "SPA"),
    ):
        creds[key] = Credential(
            user_id=f"{prefix}-{actor.email.split('@')[0][:4].upper()}-TEST",
            email=actor.email,
            otp="246810",
            system_role=actor.role,
            name=actor.name,
        )
    dbsession.add_all(creds.values())
    await dbsession.flush()
    return creds


@pytest.fixture
def auth_headers(credentials: Dict[str, Credential]) -> Dict[str, Dict[str, str]]:
    return {
        key: {
            "Authorization": f"Bearer {auth_services.issue_session_token(credential)}",
        }
        for key, credential in credentials.items()
    }
