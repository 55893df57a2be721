"""
Access-control test fixtures for ProjectHub.

Provides principals for every role, the projects and tasks they are scoped
against, and an access service backed by an in-memory SQLite database.
"""
from typing import AsyncGenerator, Iterable, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.domain.schemas.access import MembershipRole, Principal, ProjectMembership, UserGrants
from app.domain.schemas.project import CalendarEvent, Project, Task, TimeEntry
from app.infrastructure.database.base import Base
from app.infrastructure.database.models import Project as ProjectRow
from app.infrastructure.database.models import Task as TaskRow
from app.infrastructure.database.models import User as UserRow
from app.services.access import AccessService, PrincipalCache


class AccessTestData:
    """Identifiers shared by the access-control tests."""

    ADMIN_ID = "u-admin"
    MANAGER_ID = "u2"
    TEAM_LEAD_ID = "u-lead"
    DEVELOPER_ID = "u1"
    OTHER_DEVELOPER_ID = "u-other"

    PROJECT_IDS = ["p1", "p2", "p3", "p4"]

    USERS = [
        {"id": ADMIN_ID, "email": "admin@projecthub.dev", "full_name": "Ana Admin", "role": "admin"},
        {"id": MANAGER_ID, "email": "manager@projecthub.dev", "full_name": "Max Manager", "role": "manager"},
        {"id": TEAM_LEAD_ID, "email": "lead@projecthub.dev", "full_name": "Lee Lead", "role": "team_lead"},
        {"id": DEVELOPER_ID, "email": "dev@projecthub.dev", "full_name": "Dana Dev", "role": "member"},
        {"id": OTHER_DEVELOPER_ID, "email": "other@projecthub.dev", "full_name": "Otto Other", "role": "developer"},
    ]


def make_project(project_id: str) -> Project:
    return Project(id=project_id, name=f"Project {project_id}")


def make_task(task_id: str, project_id: str, assignee_id: Optional[str] = None) -> Task:
    return Task(id=task_id, project_id=project_id, title=f"Task {task_id}", assignee_id=assignee_id)


def make_membership(
    user_id: str,
    project_id: str,
    role: MembershipRole = MembershipRole.MEMBER,
) -> ProjectMembership:
    return ProjectMembership(id=f"m-{user_id}-{project_id}", user_id=user_id, project_id=project_id, role=role)


def make_principal(
    user_id: str,
    role: str,
    memberships: Iterable[ProjectMembership] = (),
    tasks: Iterable[Task] = (),
    grants: Optional[UserGrants] = None,
) -> Principal:
    """Build a principal snapshot without touching the data store."""
    return Principal(
        id=user_id,
        role=role,
        memberships=list(memberships),
        tasks=list(tasks),
        grants=grants or UserGrants(),
    )


@pytest.fixture
def access_test_data() -> AccessTestData:
    """Provide access test data."""
    return AccessTestData()


@pytest.fixture
def projects() -> List[Project]:
    """Projects p1 through p4, in that order."""
    return [make_project(project_id) for project_id in AccessTestData.PROJECT_IDS]


@pytest.fixture
def tasks() -> List[Task]:
    """
    Tasks spread over the projects.

    t1 (p1) belongs to the developer, t2 (p2) to another developer, t3 (p3)
    to the project manager, and t4 (p1) is unassigned.
    """
    return [
        make_task("t1", "p1", AccessTestData.DEVELOPER_ID),
        make_task("t2", "p2", AccessTestData.OTHER_DEVELOPER_ID),
        make_task("t3", "p3", AccessTestData.MANAGER_ID),
        make_task("t4", "p1"),
    ]


@pytest.fixture
def admin_principal(tasks: List[Task]) -> Principal:
    return make_principal(AccessTestData.ADMIN_ID, "admin", tasks=tasks)


@pytest.fixture
def manager_principal(tasks: List[Task]) -> Principal:
    """Legacy ``manager`` with a manager membership on p3 only."""
    return make_principal(
        AccessTestData.MANAGER_ID,
        "manager",
        memberships=[make_membership(AccessTestData.MANAGER_ID, "p3", MembershipRole.MANAGER)],
        tasks=tasks,
    )


@pytest.fixture
def team_lead_principal(tasks: List[Task]) -> Principal:
    """Team lead with a plain membership on p1."""
    return make_principal(
        AccessTestData.TEAM_LEAD_ID,
        "team_lead",
        memberships=[make_membership(AccessTestData.TEAM_LEAD_ID, "p1")],
        tasks=tasks,
    )


@pytest.fixture
def developer_principal(tasks: List[Task]) -> Principal:
    """Legacy ``member`` whose only own task is t1 on p1."""
    return make_principal(
        AccessTestData.DEVELOPER_ID,
        "member",
        tasks=[task for task in tasks if task.id == "t1"],
    )


@pytest.fixture
def guest_principal(tasks: List[Task]) -> Principal:
    """Principal whose stored role is not recognized."""
    return make_principal(
        "u-guest",
        "guest",
        memberships=[make_membership("u-guest", "p1", MembershipRole.MANAGER)],
        tasks=tasks,
        grants=UserGrants(project_ids=["p1"], task_ids=["t1"], calendar_access=True, tracking_access=True),
    )


@pytest.fixture
def calendar_events() -> List[CalendarEvent]:
    return [
        CalendarEvent(id="e1", title="Sprint review", task_id="t1"),
        CalendarEvent(id="e2", title="Kickoff", project_id="p3"),
        CalendarEvent(id="e3", title="Dentist", user_id=AccessTestData.DEVELOPER_ID),
        CalendarEvent(id="e4", title="Board meeting", project_id="p4"),
    ]


@pytest.fixture
def time_entries() -> List[TimeEntry]:
    return [
        TimeEntry(id="te1", user_id=AccessTestData.DEVELOPER_ID, task_id="t1", project_id="p1", duration_minutes=90),
        TimeEntry(id="te2", user_id=AccessTestData.OTHER_DEVELOPER_ID, task_id="t2", project_id="p2", duration_minutes=30),
        TimeEntry(id="te3", user_id=AccessTestData.OTHER_DEVELOPER_ID, project_id="p3", duration_minutes=45),
        TimeEntry(id="te4", user_id=AccessTestData.MANAGER_ID, task_id="t3", project_id="p3", duration_minutes=15),
    ]


# Database-backed fixtures


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over a fresh in-memory SQLite schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def seeded_session_factory(
    session_factory: async_sessionmaker[AsyncSession],
) -> async_sessionmaker[AsyncSession]:
    """
    Session factory whose database holds the test users, projects and tasks.

    No memberships or assignments exist yet; tests grant them.
    """
    async with session_factory() as session:
        session.add_all([UserRow(**user) for user in AccessTestData.USERS])
        session.add_all([
            ProjectRow(id=project_id, name=f"Project {project_id}")
            for project_id in AccessTestData.PROJECT_IDS
        ])
        await session.flush()
        session.add_all([
            TaskRow(id="t1", project_id="p1", title="Task t1", assignee_id=AccessTestData.DEVELOPER_ID),
            TaskRow(id="t2", project_id="p2", title="Task t2", assignee_id=AccessTestData.OTHER_DEVELOPER_ID),
            TaskRow(id="t3", project_id="p3", title="Task t3", assignee_id=AccessTestData.MANAGER_ID),
            TaskRow(id="t4", project_id="p1", title="Task t4"),
        ])
        await session.commit()
    return session_factory


@pytest.fixture
def principal_cache() -> PrincipalCache:
    return PrincipalCache(max_entries=16)


@pytest.fixture
def access_service(
    seeded_session_factory: async_sessionmaker[AsyncSession],
    principal_cache: PrincipalCache,
) -> AccessService:
    """Access service over the seeded in-memory database."""
    return AccessService(
        session_factory=seeded_session_factory,
        cache=principal_cache,
    )
