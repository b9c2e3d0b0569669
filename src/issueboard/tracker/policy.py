"""Authorization policy for issue actions.

The policy is a pure decision over (actor, issue, action). It never touches
the store, so the service can ask it before and independent of persistence.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

from issueboard.issue_store.exceptions import ForbiddenError

if TYPE_CHECKING:
    from issueboard.issue_store.models import Issue, User


class Action(StrEnum):
    """Actions an actor can request."""

    CREATE_ISSUE = "create_issue"
    VIEW_ISSUE = "view_issue"
    UPDATE_STATUS = "update_status"
    ASSIGN_ISSUE = "assign_issue"
    ADD_COMMENT = "add_comment"
    VIEW_ALL_ISSUES = "view_all_issues"
    MANAGE_USERS = "manage_users"


# Actions open to every authenticated actor
_ANYONE = frozenset({Action.CREATE_ISSUE, Action.VIEW_ISSUE, Action.ADD_COMMENT})

# Actions reserved for admins
_ADMIN_ONLY = frozenset({Action.ASSIGN_ISSUE, Action.VIEW_ALL_ISSUES, Action.MANAGE_USERS})


def is_assignee(actor: User, issue: Issue) -> bool:
    """Whether the issue is assigned to the actor, matched by display name."""
    return bool(issue.assigned_to) and issue.assigned_to == actor.name


def can_transition(actor: User, issue: Issue | None, action: Action) -> bool:
    """Decide whether `actor` may perform `action` on `issue`.

    Args:
        actor: The authenticated user.
        issue: The target issue. Only UPDATE_STATUS inspects it; issue-less
            actions (creation, listings) pass None.
        action: The requested action.

    Returns:
        True if allowed.
    """
    if action in _ANYONE:
        return True
    if actor.is_admin:
        return True
    if action in _ADMIN_ONLY:
        return False
    if action is Action.UPDATE_STATUS:
        return issue is not None and is_assignee(actor, issue)
    return False


def authorize(actor: User, issue: Issue | None, action: Action) -> None:
    """Raise ForbiddenError unless `actor` may perform `action`."""
    if not can_transition(actor, issue, action):
        raise ForbiddenError(f"Not authorized to {action.value.replace('_', ' ')}")
