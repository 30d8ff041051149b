import pytest
from fastapi import HTTPException

from taskflow.utils import PermissionDenied
from taskflow.workflow.enums import Role
from taskflow.workflow.models import Task
from taskflow.workflow.permissions import (
    MANAGERS,
    PermissionChecker,
    require_admin,
    require_role,
    require_superadmin,
)


def test_require_role_allows_listed_role(admin):
    assert require_role(admin, MANAGERS) is admin


def test_require_role_denies_other_roles(staff):
    with pytest.raises(PermissionDenied, match="staff"):
        require_role(staff, {Role.ADMIN, Role.SUPERADMIN})


def test_superadmin_is_not_an_admin_reviewer(superadmin):
    with pytest.raises(PermissionDenied):
        require_role(superadmin, {Role.ADMIN})


def test_permission_checker(staff, other_staff, admin, superadmin):
    task = Task(assigned_to=staff.email)

    assert PermissionChecker.is_manager(admin)
    assert PermissionChecker.is_manager(superadmin)
    assert not PermissionChecker.is_manager(staff)
    assert PermissionChecker.is_superadmin(superadmin)
    assert not PermissionChecker.is_superadmin(admin)

    assert PermissionChecker.is_assignee(staff, task)
    assert PermissionChecker.can_view_task(staff, task)
    assert PermissionChecker.can_view_task(admin, task)
    assert not PermissionChecker.can_view_task(other_staff, task)


def test_route_gates(staff, admin, superadmin):
    assert require_admin(admin) is admin
    assert require_superadmin(superadmin) is superadmin

    with pytest.raises(HTTPException) as exc_info:
        require_admin(staff)
    assert exc_info.value.status_code == 403

    with pytest.raises(HTTPException):
        require_superadmin(admin)


def test_assignee_match_ignores_case_and_padding(staff):
    task = Task(assigned_to=" Sam@Company.COM")
    assert PermissionChecker.is_assignee(staff, task)
