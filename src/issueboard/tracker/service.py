"""IssueService - Issue state machine and its side effects."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from issueboard.issue_store import (
    IssueCategory,
    IssuePriority,
    IssueStatus,
    ValidationError,
)
from issueboard.logging import truncate_text
from issueboard.tracker.notifier import Notifier
from issueboard.tracker.policy import Action, authorize

if TYPE_CHECKING:
    from issueboard.api.events import EventManager
    from issueboard.issue_store import Issue, IssuePage, IssueStats, IssueStore, User

logger = logging.getLogger(__name__)


def _require_text(value: str | None, field_name: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def _parse_choice(value: str | None, enum: type, field_name: str) -> str:
    value = _require_text(value, field_name)
    try:
        return enum(value).value
    except ValueError:
        allowed = ", ".join(member.value for member in enum)
        raise ValidationError(f"{field_name} must be one of: {allowed}") from None


class IssueService:
    """Applies issue mutations for an authenticated actor.

    Each mutation runs in the same order: load, authorize, validate, persist,
    notify, broadcast. Nothing after the persist step runs unless the store
    commit succeeded, and nothing after it can fail the request.
    """

    def __init__(
        self,
        store: IssueStore,
        event_manager: EventManager,
        notifier: Notifier | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: IssueStore for persistence.
            event_manager: EventManager for live board updates.
            notifier: Notification writer. Defaults to one on `store`.
        """
        self.store = store
        self.event_manager = event_manager
        self.notifier = notifier if notifier is not None else Notifier(store)

    # --- Reads ---

    def get(self, actor: User, issue_id: str) -> Issue:
        """Fetch one issue."""
        issue = self.store.get_issue(issue_id)
        authorize(actor, issue, Action.VIEW_ISSUE)
        return issue

    def list_mine(self, actor: User) -> list[Issue]:
        """List the issues the actor filed, most recent first."""
        return self.store.list_issues_by_creator(actor.id)

    def list_all(self, actor: User, page: int = 1, limit: int = 100) -> IssuePage:
        """List every issue, paginated. Admin only."""
        authorize(actor, None, Action.VIEW_ALL_ISSUES)
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive")
        return self.store.list_issues(page=page, limit=limit)

    def stats(self, actor: User) -> IssueStats:
        """Issue counts: every issue for admins, the actor's own otherwise."""
        if actor.is_admin:
            return self.store.get_issue_stats()
        return self.store.get_issue_stats(created_by=actor.id)

    # --- Mutations ---

    def create(
        self,
        actor: User,
        title: str | None,
        description: str | None,
        category: str | None,
        priority: str | None,
    ) -> Issue:
        """File a new issue. It starts Open and unassigned.

        Raises:
            ValidationError: If a field is missing or out of range.
        """
        authorize(actor, None, Action.CREATE_ISSUE)
        issue = self.store.create_issue(
            title=_require_text(title, "title"),
            description=_require_text(description, "description"),
            category=_parse_choice(category, IssueCategory, "category"),
            priority=_parse_choice(priority, IssuePriority, "priority"),
            created_by=actor.id,
        )
        logger.info(
            "Issue %s created by %s: %s", issue.id, actor.id, truncate_text(issue.title)
        )
        return issue

    def update_status(
        self,
        actor: User,
        issue_id: str,
        new_status: str | None,
        expected_version: int | None = None,
    ) -> Issue:
        """Move an issue to another status column.

        Args:
            actor: The requesting user; must be admin or the assignee.
            issue_id: The issue's unique ID.
            new_status: Target status value.
            expected_version: Version the caller last saw. When given, a
                newer stored version rejects the write.

        Raises:
            IssueNotFoundError: If the issue doesn't exist.
            ForbiddenError: If the actor may not change its status.
            ValidationError: If the status is unknown.
            ConflictError: If the issue changed since expected_version or
                since it was authorized.
        """
        issue = self.store.get_issue(issue_id)
        authorize(actor, issue, Action.UPDATE_STATUS)
        status = IssueStatus(_parse_choice(new_status, IssueStatus, "status"))

        previous = issue.status
        # Write against the snapshot that was authorized
        if expected_version is None:
            expected_version = issue.version
        updated = self.store.update_issue(
            issue_id, status=status, expected_version=expected_version
        )
        logger.info(
            "Issue %s status %s -> %s by %s", issue_id, previous, updated.status, actor.id
        )

        self.notifier.notify_user(
            actor,
            updated.created_by,
            f"Status updated to {updated.status}: {updated.title}",
            updated.id,
        )
        self._broadcast_issue(updated)
        return updated

    def assign(self, actor: User, issue_id: str, assignee: str | None) -> Issue:
        """Assign an issue to a display name, or clear it with "".

        The name is not checked against existing users.

        Raises:
            ForbiddenError: If the actor is not an admin.
            IssueNotFoundError: If the issue doesn't exist.
        """
        authorize(actor, None, Action.ASSIGN_ISSUE)
        issue = self.store.get_issue(issue_id)
        name = (assignee or "").strip()

        updated = self.store.update_issue(issue.id, assigned_to=name)
        logger.info("Issue %s assigned to %r by %s", issue_id, name, actor.id)

        notification = self.notifier.notify_name(
            actor,
            name,
            f"You have been assigned to issue: {updated.title}",
            updated.id,
        )
        self._broadcast_issue(updated)
        if notification is not None:
            self._broadcast_notification(
                [notification.recipient_id], {"type": "assignment", "issue_id": updated.id}
            )
        return updated

    def add_comment(self, actor: User, issue_id: str, text: str | None) -> Issue:
        """Append a comment to an issue's thread.

        Raises:
            ValidationError: If the text is empty.
            IssueNotFoundError: If the issue doesn't exist.
        """
        body = _require_text(text, "text")
        issue = self.store.get_issue(issue_id)
        authorize(actor, issue, Action.ADD_COMMENT)

        updated = self.store.append_comment(issue.id, user=actor.name, text=body)
        logger.info("Comment added to issue %s by %s", issue_id, actor.id)

        notified = [
            self.notifier.notify_user(
                actor,
                updated.created_by,
                f"New comment on your issue: {updated.title}",
                updated.id,
            ),
            self.notifier.notify_name(
                actor,
                updated.assigned_to,
                f"New comment on assigned issue: {updated.title}",
                updated.id,
            ),
        ]
        recipients = sorted({n.recipient_id for n in notified if n is not None})

        self._broadcast_issue(updated)
        if recipients:
            self._broadcast_notification(
                recipients, {"type": "comment", "issue_id": updated.id}
            )
        return updated

    # --- Broadcast ---

    def _broadcast_issue(self, issue: Issue) -> None:
        try:
            self.event_manager.emit_issue_updated(issue)
        except Exception:
            logger.exception("Failed to broadcast update for issue %s", issue.id)

    def _broadcast_notification(self, recipient_ids: list[str], data: dict[str, str]) -> None:
        try:
            self.event_manager.emit_notification(recipient_ids, data)
        except Exception:
            logger.exception("Failed to broadcast notification hint")
