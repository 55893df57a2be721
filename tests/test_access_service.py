"""
Tests for the access data service and principal cache.

Runs against an in-memory SQLite database seeded with users, projects and
tasks; memberships and assignments are granted by the tests themselves.
"""
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from app.core.config import settings
from app.core.exceptions import (
    AccessStoreError,
    AuthenticationError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from app.domain.schemas.access import AssignmentStatus, MembershipRole, UserGrants
from app.infrastructure.database.models import ProjectMember, TaskAssignment
from app.services.access import AccessService, PrincipalCache
from app.services.auth.authorization import resource_filter, permission_resolver

from tests.fixtures.access import AccessTestData, make_principal, make_project

ADMIN = AccessTestData.ADMIN_ID
MANAGER = AccessTestData.MANAGER_ID
DEVELOPER = AccessTestData.DEVELOPER_ID


class TestPrincipalCache:
    """Test PrincipalCache behavior."""

    def test_put_get_invalidate(self, principal_cache):
        # Arrange
        principal = make_principal("u1", "developer")

        # Act
        principal_cache.put(principal)

        # Assert
        assert "u1" in principal_cache
        assert principal_cache.get("u1") is principal
        assert principal_cache.invalidate("u1") is True
        assert principal_cache.invalidate("u1") is False
        assert principal_cache.get("u1") is None

    def test_put_replaces_snapshot(self, principal_cache):
        principal_cache.put(make_principal("u1", "developer"))
        fresh = make_principal("u1", "team_lead")

        principal_cache.put(fresh)

        assert len(principal_cache) == 1
        assert principal_cache.get("u1") is fresh

    def test_oldest_entry_evicted_when_full(self):
        cache = PrincipalCache(max_entries=2)

        cache.put(make_principal("a", "developer"))
        cache.put(make_principal("b", "developer"))
        cache.put(make_principal("c", "developer"))

        assert "a" not in cache
        assert "b" in cache and "c" in cache
        assert len(cache) == 2

    def test_reloading_refreshes_position(self):
        cache = PrincipalCache(max_entries=2)
        cache.put(make_principal("a", "developer"))
        cache.put(make_principal("b", "developer"))

        cache.put(make_principal("a", "developer"))
        cache.put(make_principal("c", "developer"))

        assert "b" not in cache
        assert "a" in cache

    @pytest.mark.parametrize("max_entries", [0, -1])
    def test_bound_below_one_rejected(self, max_entries):
        with pytest.raises(ValueError):
            PrincipalCache(max_entries=max_entries)

    def test_default_bound_from_settings(self):
        assert PrincipalCache().max_entries == settings.PRINCIPAL_CACHE_MAX_ENTRIES

    def test_clear(self, principal_cache):
        principal_cache.put(make_principal("a", "developer"))

        principal_cache.clear()

        assert len(principal_cache) == 0


class TestLoadPrincipal:
    """Test principal loading."""

    @pytest.mark.asyncio
    async def test_unknown_user_is_none(self, access_service):
        assert await access_service.load_principal("nobody") is None
        assert await access_service.get_principal("nobody") is None
        assert "nobody" not in access_service.cache

    @pytest.mark.asyncio
    async def test_fresh_user_snapshot(self, access_service):
        # Act
        principal = await access_service.load_principal(DEVELOPER)

        # Assert
        assert principal.role == "member"
        assert principal.email == "dev@projecthub.dev"
        assert principal.memberships == []
        assert principal.assignments == []
        assert principal.grants == UserGrants()
        # t1 is reached through its assignee column alone
        assert [task.id for task in principal.tasks] == ["t1"]

    @pytest.mark.asyncio
    async def test_known_tasks_are_deduplicated(self, access_service):
        # Arrange: t1 is both assigned to u1 and reached through an assignment
        await access_service.assign_task("t1", DEVELOPER, assigned_by=MANAGER)
        await access_service.assign_task("t2", DEVELOPER, assigned_by=MANAGER)

        # Act
        principal = await access_service.load_principal(DEVELOPER)

        # Assert
        assert sorted(task.id for task in principal.tasks) == ["t1", "t2"]
        assert sorted(a.task_id for a in principal.assignments) == ["t1", "t2"]

    @pytest.mark.asyncio
    async def test_snapshot_includes_member_projects(self, access_service):
        await access_service.add_project_member(MANAGER, "p3", "manager", assigned_by=ADMIN)

        principal = await access_service.load_principal(MANAGER)

        assert [project.id for project in principal.projects] == ["p3"]
        assert principal.memberships[0].role is MembershipRole.MANAGER
        assert principal.managed_project_ids == {"p3"}

    @pytest.mark.asyncio
    async def test_get_principal_uses_cache(self, access_service):
        first = await access_service.get_principal(DEVELOPER)
        second = await access_service.get_principal(DEVELOPER)

        assert first is second
        assert DEVELOPER in access_service.cache

    @pytest.mark.asyncio
    async def test_refresh_principal_replaces_entry(self, access_service):
        first = await access_service.get_principal(DEVELOPER)

        refreshed = await access_service.refresh_principal(DEVELOPER)

        assert refreshed is not first
        assert access_service.cache.get(DEVELOPER) is refreshed


class TestProjectMembershipOperations:
    """Test add_project_member and remove_project_member."""

    @pytest.mark.asyncio
    async def test_add_member_returns_true_and_is_fetchable(self, access_service):
        # Act
        added = await access_service.add_project_member(MANAGER, "p3", MembershipRole.MANAGER, assigned_by=ADMIN)

        # Assert
        assert added is True
        memberships = await access_service.fetch_project_memberships(MANAGER)
        assert len(memberships) == 1
        assert memberships[0].project_id == "p3"
        assert memberships[0].assigned_by == ADMIN

    @pytest.mark.asyncio
    async def test_add_member_requires_granting_principal(self, access_service):
        with pytest.raises(AuthenticationError):
            await access_service.add_project_member(MANAGER, "p3", "manager")

    @pytest.mark.asyncio
    async def test_add_member_invalid_role(self, access_service):
        with pytest.raises(ValidationError) as exc_info:
            await access_service.add_project_member(MANAGER, "p3", "owner", assigned_by=ADMIN)

        assert exc_info.value.details["field"] == "role"

    @pytest.mark.asyncio
    async def test_add_member_unknown_project(self, access_service):
        with pytest.raises(NotFoundError):
            await access_service.add_project_member(MANAGER, "p-missing", assigned_by=ADMIN)

    @pytest.mark.asyncio
    async def test_add_member_twice_rejected(self, access_service):
        await access_service.add_project_member(MANAGER, "p3", assigned_by=ADMIN)

        with pytest.raises(ValidationError):
            await access_service.add_project_member(MANAGER, "p3", assigned_by=ADMIN)

        assert len(await access_service.fetch_project_memberships(MANAGER)) == 1

    @pytest.mark.asyncio
    async def test_remove_member(self, access_service):
        await access_service.add_project_member(MANAGER, "p3", assigned_by=ADMIN)
        membership = (await access_service.fetch_project_memberships(MANAGER))[0]

        removed = await access_service.remove_project_member(membership.id)

        assert removed is True
        assert await access_service.fetch_project_memberships(MANAGER) == []

    @pytest.mark.asyncio
    async def test_remove_missing_member(self, access_service):
        with pytest.raises(NotFoundError):
            await access_service.remove_project_member("m-missing")


class TestTaskAssignmentOperations:
    """Test assign_task, unassign_task and status updates."""

    @pytest.mark.asyncio
    async def test_assign_and_unassign(self, access_service):
        # Act
        assert await access_service.assign_task("t2", DEVELOPER, assigned_by=MANAGER) is True
        assignments = await access_service.fetch_task_assignments(DEVELOPER)

        # Assert
        assert [a.task_id for a in assignments] == ["t2"]
        assert assignments[0].status is AssignmentStatus.ASSIGNED

        assert await access_service.unassign_task(assignments[0].id) is True
        assert await access_service.fetch_task_assignments(DEVELOPER) == []

    @pytest.mark.asyncio
    async def test_assign_requires_assigning_principal(self, access_service):
        with pytest.raises(AuthenticationError):
            await access_service.assign_task("t2", DEVELOPER)

    @pytest.mark.asyncio
    async def test_assign_unknown_task(self, access_service):
        with pytest.raises(NotFoundError):
            await access_service.assign_task("t-missing", DEVELOPER, assigned_by=MANAGER)

    @pytest.mark.asyncio
    async def test_unassign_missing(self, access_service):
        with pytest.raises(NotFoundError):
            await access_service.unassign_task("a-missing")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["accepted", AssignmentStatus.DECLINED])
    async def test_status_moves_once(self, access_service, status):
        # Arrange
        await access_service.assign_task("t2", DEVELOPER, assigned_by=MANAGER)
        assignment = (await access_service.fetch_task_assignments(DEVELOPER))[0]

        # Act
        assert await access_service.update_task_assignment_status(assignment.id, status) is True

        # Assert
        updated = (await access_service.fetch_task_assignments(DEVELOPER))[0]
        assert updated.status is AssignmentStatus(status)
        with pytest.raises(InvalidStateTransitionError):
            await access_service.update_task_assignment_status(assignment.id, "accepted")

    @pytest.mark.asyncio
    async def test_status_cannot_return_to_assigned(self, access_service):
        await access_service.assign_task("t2", DEVELOPER, assigned_by=MANAGER)
        assignment = (await access_service.fetch_task_assignments(DEVELOPER))[0]

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            await access_service.update_task_assignment_status(assignment.id, "assigned")

        assert exc_info.value.details == {"field": "status", "current": "assigned", "requested": "assigned"}

    @pytest.mark.asyncio
    async def test_unknown_status(self, access_service):
        with pytest.raises(ValidationError):
            await access_service.update_task_assignment_status("a-any", "finished")


class TestUserGrants:
    """Test update_user_grants."""

    @pytest.mark.asyncio
    async def test_insert_then_replace(self, access_service):
        # Act
        await access_service.update_user_grants(
            DEVELOPER,
            UserGrants(projectIds=["p1", "p1", "p2"], calendarAccess=True),
        )
        first = (await access_service.load_principal(DEVELOPER)).grants
        await access_service.update_user_grants(DEVELOPER, UserGrants(task_ids=["t4"]))
        second = (await access_service.load_principal(DEVELOPER)).grants

        # Assert
        assert first.project_ids == ["p1", "p2"]
        assert first.calendar_access is True
        assert second.project_ids == []
        assert second.task_ids == ["t4"]
        assert second.calendar_access is False

    @pytest.mark.asyncio
    async def test_unknown_user(self, access_service):
        with pytest.raises(NotFoundError):
            await access_service.update_user_grants("nobody", UserGrants())


class TestCacheConsistency:
    """Writes refresh cached principals instead of patching them."""

    @pytest.mark.asyncio
    async def test_grant_refreshes_cached_principal(self, access_service, projects):
        # Arrange
        before = await access_service.get_principal(MANAGER)
        assert permission_resolver.can_edit_project(before, "p3") is False

        # Act
        await access_service.add_project_member(MANAGER, "p3", assigned_by=ADMIN)

        # Assert
        after = access_service.cache.get(MANAGER)
        assert after is not before
        assert permission_resolver.can_edit_project(after, "p3") is True
        assert [p.id for p in resource_filter.filter_projects(after, projects)] == ["p3"]

    @pytest.mark.asyncio
    async def test_revoke_refreshes_cached_principal(self, access_service):
        await access_service.add_project_member(MANAGER, "p3", assigned_by=ADMIN)
        cached = await access_service.get_principal(MANAGER)
        membership_id = cached.memberships[0].id

        await access_service.remove_project_member(membership_id)

        assert access_service.cache.get(MANAGER).memberships == []

    @pytest.mark.asyncio
    async def test_repeated_refresh_does_not_accumulate(self, access_service):
        await access_service.assign_task("t2", DEVELOPER, assigned_by=MANAGER)
        await access_service.get_principal(DEVELOPER)

        for _ in range(3):
            await access_service.refresh_principal(DEVELOPER)

        principal = access_service.cache.get(DEVELOPER)
        assert len(principal.assignments) == 1
        assert sorted(task.id for task in principal.tasks) == ["t1", "t2"]

    @pytest.mark.asyncio
    async def test_write_for_uncached_user_does_not_populate_cache(self, access_service):
        await access_service.assign_task("t2", DEVELOPER, assigned_by=MANAGER)

        assert DEVELOPER not in access_service.cache

    @pytest.mark.asyncio
    async def test_assignment_record_alone_does_not_widen_projects(self, access_service):
        principal = await access_service.get_principal(DEVELOPER)
        assert [p.id for p in resource_filter.filter_projects(principal, [make_project("p1"), make_project("p2")])] == ["p1"]

        await access_service.assign_task("t2", DEVELOPER, assigned_by=MANAGER)

        # t2 is assigned through the assignment table but its assignee column still names another user
        principal = access_service.cache.get(DEVELOPER)
        assert permission_resolver.can_view_project(principal, "p2") is False
        assert [a.task_id for a in principal.assignments] == ["t2"]


class TestStoreFailures:
    """Store failures roll back and leave the cache untouched."""

    @pytest.mark.asyncio
    async def test_unique_violation_surfaces_as_store_error(self, seeded_session_factory, principal_cache):
        # Arrange: a membership inserted behind the service's back defeats its duplicate check
        service = AccessService(session_factory=seeded_session_factory, cache=principal_cache)
        async with seeded_session_factory() as session:
            session.add(ProjectMember(id="m-existing", user_id=MANAGER, project_id="p3", role="member"))
            await session.commit()
        skip_duplicate_check = AsyncMock(return_value=None)

        # Act
        with pytest.MonkeyPatch.context() as mp:
            mp.setattr(
                "app.repositories.project_member.ProjectMemberRepository.get_by_user_and_project",
                skip_duplicate_check,
            )
            with pytest.raises(AccessStoreError) as exc_info:
                await service.add_project_member(MANAGER, "p3", assigned_by=ADMIN)

        # Assert
        assert exc_info.value.status_code == 503
        assert exc_info.value.details["operation"] == "add_project_member"
        async with seeded_session_factory() as session:
            rows = (await session.execute(select(ProjectMember).where(ProjectMember.user_id == MANAGER))).scalars().all()
        assert [row.id for row in rows] == ["m-existing"]

    @pytest.mark.asyncio
    async def test_failed_write_keeps_cached_principal(self, access_service):
        # Arrange
        cached = await access_service.get_principal(DEVELOPER)
        failing = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("database is locked")))

        # Act
        with pytest.MonkeyPatch.context() as mp:
            mp.setattr("app.repositories.task_assignment.TaskAssignmentRepository.create", failing)
            with pytest.raises(AccessStoreError):
                await access_service.assign_task("t2", DEVELOPER, assigned_by=MANAGER)

        # Assert
        assert access_service.cache.get(DEVELOPER) is cached
        assert await access_service.fetch_task_assignments(DEVELOPER) == []

    @pytest.mark.asyncio
    async def test_read_failure_surfaces_as_store_error(self, access_service):
        failing = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("no such table")))

        with pytest.MonkeyPatch.context() as mp:
            mp.setattr("app.repositories.project_member.ProjectMemberRepository.get_by_user", failing)
            with pytest.raises(AccessStoreError) as exc_info:
                await access_service.fetch_project_memberships(MANAGER)

        assert exc_info.value.details["service"] == "access_store"


@pytest.mark.asyncio
async def test_rows_are_stored_with_canonical_columns(access_service, seeded_session_factory):
    await access_service.assign_task("t4", DEVELOPER, assigned_by=MANAGER)

    async with seeded_session_factory() as session:
        row = (await session.execute(select(TaskAssignment))).scalar_one()

    assert row.assigned_to == DEVELOPER
    assert row.assigned_by == MANAGER
    assert row.status == "assigned"
