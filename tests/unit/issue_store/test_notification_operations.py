"""Unit tests for Notification and User operations in IssueStore."""

import time

import pytest

from issueboard.issue_store import (
    ForbiddenError,
    IssueStore,
    NotificationNotFoundError,
    UserExistsError,
    UserNotFoundError,
    UserRole,
)


@pytest.mark.unit
class TestUsers:
    """Tests for user operations."""

    def test_create_user_issues_token(self, store: IssueStore) -> None:
        """Every user gets a unique opaque token."""
        a = store.create_user(name="A", email="a@example.com")
        b = store.create_user(name="B", email="b@example.com")

        assert a.api_token.startswith("ib_")
        assert a.api_token != b.api_token
        assert a.role == UserRole.USER.value
        assert not a.is_admin

    def test_create_user_duplicate_email(self, store: IssueStore, reporter) -> None:
        """UserExistsError for a reused email."""
        with pytest.raises(UserExistsError):
            store.create_user(name="Other", email=reporter.email)

    def test_get_user_by_token(self, store: IssueStore, reporter) -> None:
        """Token resolves to its user; unknown tokens to None."""
        assert store.get_user_by_token(reporter.api_token).id == reporter.id
        assert store.get_user_by_token("ib_bogus") is None

    def test_find_user_by_name(self, store: IssueStore, technician) -> None:
        """Display names resolve; unknown and empty names don't."""
        assert store.find_user_by_name("Bob").id == technician.id
        assert store.find_user_by_name("Nobody") is None
        assert store.find_user_by_name("") is None

    def test_find_user_by_name_prefers_oldest(self, store: IssueStore, technician) -> None:
        """With duplicate names the oldest account wins."""
        time.sleep(0.005)
        store.create_user(name="Bob", email="bob2@example.com")

        assert store.find_user_by_name("Bob").id == technician.id

    def test_update_user_role(self, store: IssueStore, reporter) -> None:
        """Role changes persist."""
        updated = store.update_user_role(reporter.id, UserRole.ADMIN)

        assert updated.is_admin
        assert store.get_user(reporter.id).role == "admin"

    def test_get_user_not_found(self, store: IssueStore) -> None:
        """UserNotFoundError for bad id."""
        with pytest.raises(UserNotFoundError):
            store.get_user("nonexistent")


@pytest.mark.unit
class TestNotifications:
    """Tests for notification operations."""

    def test_create_notification_defaults(self, store: IssueStore, reporter, issue) -> None:
        """New notifications are unread info alerts."""
        n = store.create_notification(reporter.id, "Hello", related_issue_id=issue.id)

        assert n.is_read is False
        assert n.kind == "info"
        assert n.related_issue_id == issue.id
        assert n.created_at is not None

    def test_list_newest_first_capped(self, store: IssueStore, reporter, technician) -> None:
        """At most 20, newest first, only the recipient's."""
        for n in range(25):
            store.create_notification(reporter.id, f"n{n}")
        store.create_notification(technician.id, "not yours")

        inbox = store.list_notifications(reporter.id)

        assert len(inbox) == 20
        assert inbox[0].text == "n24"
        assert inbox[-1].text == "n5"
        assert all(n.recipient_id == reporter.id for n in inbox)

    def test_mark_read(self, store: IssueStore, reporter) -> None:
        """Owner can mark read."""
        n = store.create_notification(reporter.id, "Hello")

        updated = store.mark_notification_read(reporter.id, n.id)

        assert updated.is_read is True

    def test_mark_read_idempotent(self, store: IssueStore, reporter) -> None:
        """Marking again stays read, no error, no duplicate."""
        n = store.create_notification(reporter.id, "Hello")
        store.mark_notification_read(reporter.id, n.id)

        again = store.mark_notification_read(reporter.id, n.id)

        assert again.is_read is True
        assert len(store.list_notifications(reporter.id)) == 1

    def test_mark_read_other_users_notification(
        self, store: IssueStore, reporter, technician
    ) -> None:
        """ForbiddenError when not the recipient; flag unchanged."""
        n = store.create_notification(reporter.id, "Hello")

        with pytest.raises(ForbiddenError):
            store.mark_notification_read(technician.id, n.id)

        assert store.list_notifications(reporter.id)[0].is_read is False

    def test_mark_read_not_found(self, store: IssueStore, reporter) -> None:
        """NotificationNotFoundError for bad id."""
        with pytest.raises(NotificationNotFoundError):
            store.mark_notification_read(reporter.id, "nonexistent")

    def test_mark_all_read(self, store: IssueStore, reporter, technician) -> None:
        """Flips only the recipient's unread notifications and counts them."""
        first = store.create_notification(reporter.id, "a")
        store.create_notification(reporter.id, "b")
        store.create_notification(technician.id, "c")
        store.mark_notification_read(reporter.id, first.id)

        count = store.mark_all_notifications_read(reporter.id)

        assert count == 1
        assert all(n.is_read for n in store.list_notifications(reporter.id))
        assert store.list_notifications(technician.id)[0].is_read is False

    def test_mark_all_read_nothing_unread(self, store: IssueStore, reporter) -> None:
        """Zero when nothing is unread."""
        assert store.mark_all_notifications_read(reporter.id) == 0
