from typing import Callable, Iterable

from fastapi import Depends, HTTPException, status
from loguru import logger

from taskflow.auth.dependencies import get_current_actor
from taskflow.auth.schemas import Actor
from taskflow.utils import PermissionDenied, normalize_email
from taskflow.workflow.enums import Role
from taskflow.workflow.models import Task

MANAGERS = frozenset({Role.ADMIN, Role.SUPERADMIN})


def require_role(actor: Actor, allowed: Iterable[Role]) -> Actor:
    """
    The one authorization rule: the actor's system role must be in ``allowed``.

    Every mutating workflow operation calls this before touching state.
    """
    allowed = frozenset(allowed)
    if actor.role not in allowed:
        required = ", ".join(sorted(role.value for role in allowed))
        logger.warning(
            "Denied {} ({}): requires one of {}", actor.email, actor.role.value, required,
        )
        raise PermissionDenied(
            f"Role '{actor.role.value}' is not allowed to do this (requires {required})",
        )
    return actor


class PermissionChecker:
    """Read-side checks that do not raise"""

    @staticmethod
    def is_superadmin(actor: Actor) -> bool:
        return actor.role == Role.SUPERADMIN

    @staticmethod
    def is_manager(actor: Actor) -> bool:
        """Admin or superadmin"""
        return actor.role in MANAGERS

    @staticmethod
    def is_assignee(actor: Actor, task: Task) -> bool:
        return normalize_email(task.assigned_to) == normalize_email(actor.email)

    @staticmethod
    def can_view_task(actor: Actor, task: Task) -> bool:
        return PermissionChecker.is_manager(actor) or PermissionChecker.is_assignee(
            actor, task,
        )


def _role_dependency(*allowed: Role) -> Callable[..., Actor]:
    def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        try:
            return require_role(actor, allowed)
        except PermissionDenied as e:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    return dependency


# Route-level gates for read endpoints
require_admin = _role_dependency(Role.ADMIN, Role.SUPERADMIN)
require_superadmin = _role_dependency(Role.SUPERADMIN)
