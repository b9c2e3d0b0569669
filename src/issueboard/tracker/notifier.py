"""Notification generation for issue mutations."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from issueboard.issue_store.exceptions import IssueStoreError

if TYPE_CHECKING:
    from issueboard.issue_store import IssueStore, Notification, User

logger = logging.getLogger(__name__)


class Notifier:
    """Writes inbox notifications on behalf of the issue service.

    Delivery is best effort: a failure here never undoes the mutation that
    triggered it, so every error is logged and the notification skipped.
    """

    def __init__(self, store: IssueStore) -> None:
        self.store = store

    def notify_user(
        self,
        actor: User,
        recipient_id: str,
        text: str,
        issue_id: str | None = None,
    ) -> Notification | None:
        """Notify a user by ID unless they are the actor.

        Returns:
            The created notification, or None if skipped or failed.
        """
        if recipient_id == actor.id:
            return None
        try:
            notification = self.store.create_notification(
                recipient_id=recipient_id,
                text=text,
                related_issue_id=issue_id,
            )
        except IssueStoreError:
            logger.exception("Failed to create notification for user %s", recipient_id)
            return None
        logger.debug("Notified user %s: %s", recipient_id, text)
        return notification

    def notify_name(
        self,
        actor: User,
        name: str,
        text: str,
        issue_id: str | None = None,
    ) -> Notification | None:
        """Notify the user with display name `name`, if one exists.

        Unknown names are skipped silently, matching assignment, which
        accepts any name.
        """
        if not name:
            return None
        try:
            recipient = self.store.find_user_by_name(name)
        except IssueStoreError:
            logger.exception("Failed to resolve recipient %r", name)
            return None
        if recipient is None:
            logger.debug("No user named %r; notification skipped", name)
            return None
        return self.notify_user(actor, recipient.id, text, issue_id)
