from enum import Enum


class Role(str, Enum):
    """System access roles"""
    STAFF = "staff"  # Completes tasks assigned to them
    ADMIN = "admin"  # Assigns tasks, first-pass review
    SUPERADMIN = "superadmin"  # Final approval, provisions accounts


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"


class ApprovalStatus(str, Enum):
    """Stage of a task in the review pipeline."""
    ASSIGNED = "assigned"
    IN_REVIEW = "in-review"  # awaiting admin
    ADMIN_APPROVED = "admin-approved"  # awaiting superadmin
    SUPERADMIN_APPROVED = "superadmin-approved"  # closed
    REJECTED = "rejected"  # back with the assignee


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
