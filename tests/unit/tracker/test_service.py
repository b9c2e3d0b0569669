"""Unit tests for IssueService."""

from unittest.mock import MagicMock

import pytest

from issueboard.api.events import EventManager
from issueboard.issue_store import (
    ConflictError,
    ForbiddenError,
    IssueNotFoundError,
    IssueStore,
    TransientStoreError,
    User,
    ValidationError,
)
from issueboard.tracker import IssueService


@pytest.fixture
def mock_event_manager() -> MagicMock:
    """Create a mock EventManager."""
    return MagicMock(spec=EventManager)


@pytest.fixture
def service(store: IssueStore, mock_event_manager: MagicMock) -> IssueService:
    """Create an IssueService on the in-memory store."""
    return IssueService(store=store, event_manager=mock_event_manager)


def _texts(store: IssueStore, user: User) -> list[str]:
    return [n.text for n in store.list_notifications(user.id)]


@pytest.mark.unit
class TestCreate:
    """Tests for IssueService.create."""

    def test_create_issue(self, service: IssueService, reporter: User, mock_event_manager) -> None:
        """Open, unassigned, owned by the actor, no comments, no side effects."""
        issue = service.create(
            reporter,
            title="Printer jam",
            description="...",
            category="Infrastructure",
            priority="High",
        )

        assert issue.status == "Open"
        assert issue.assigned_to == ""
        assert issue.created_by == reporter.id
        assert issue.comments == []
        mock_event_manager.emit_issue_updated.assert_not_called()

    @pytest.mark.parametrize("missing", ["title", "description", "category", "priority"])
    def test_create_missing_field(self, service: IssueService, reporter: User, missing) -> None:
        """ValidationError for each missing field."""
        fields = {
            "title": "t",
            "description": "d",
            "category": "Bug",
            "priority": "Low",
        }
        fields[missing] = None

        with pytest.raises(ValidationError, match=missing):
            service.create(reporter, **fields)

    def test_create_blank_title(self, service: IssueService, reporter: User) -> None:
        """Whitespace-only text counts as missing."""
        with pytest.raises(ValidationError):
            service.create(reporter, title="  ", description="d", category="Bug", priority="Low")

    def test_create_bad_category(self, service: IssueService, reporter: User) -> None:
        """ValidationError for a category outside the set."""
        with pytest.raises(ValidationError, match="category"):
            service.create(reporter, title="t", description="d", category="Food", priority="Low")

    def test_create_bad_priority(self, service: IssueService, reporter: User) -> None:
        """ValidationError for a priority outside the set."""
        with pytest.raises(ValidationError, match="priority"):
            service.create(reporter, title="t", description="d", category="Bug", priority="Urgent")


@pytest.mark.unit
class TestUpdateStatus:
    """Tests for IssueService.update_status."""

    def test_admin_updates_and_creator_notified(
        self, service: IssueService, store: IssueStore, admin, reporter, issue, mock_event_manager
    ) -> None:
        """Status changes, one notification to the creator, one broadcast."""
        updated = service.update_status(admin, issue.id, "Resolved")

        assert updated.status == "Resolved"
        assert _texts(store, reporter) == ["Status updated to Resolved: Printer jam"]
        mock_event_manager.emit_issue_updated.assert_called_once()
        assert mock_event_manager.emit_issue_updated.call_args.args[0].status == "Resolved"

    def test_assignee_updates(
        self, service: IssueService, store: IssueStore, admin, technician, issue
    ) -> None:
        """The assignee may move the issue."""
        service.assign(admin, issue.id, "Bob")

        updated = service.update_status(technician, issue.id, "In Progress")

        assert updated.status == "In Progress"

    def test_creator_moving_own_issue_not_notified(
        self, service: IssueService, store: IssueStore, reporter, issue
    ) -> None:
        """No self-notification when the actor is the creator."""
        store.update_issue(issue.id, assigned_to="Uma")

        service.update_status(reporter, issue.id, "Resolved")

        assert _texts(store, reporter) == []

    def test_unauthorized_user_forbidden(
        self, service: IssueService, store: IssueStore, technician, issue, mock_event_manager
    ) -> None:
        """Neither admin nor assignee: ForbiddenError, status unchanged."""
        with pytest.raises(ForbiddenError):
            service.update_status(technician, issue.id, "Resolved")

        assert store.get_issue(issue.id).status == "Open"
        mock_event_manager.emit_issue_updated.assert_not_called()

    def test_not_found(self, service: IssueService, admin) -> None:
        """IssueNotFoundError for bad id."""
        with pytest.raises(IssueNotFoundError):
            service.update_status(admin, "nonexistent", "Resolved")

    def test_invalid_status(self, service: IssueService, store: IssueStore, admin, issue) -> None:
        """ValidationError for an unknown status; nothing changes."""
        with pytest.raises(ValidationError):
            service.update_status(admin, issue.id, "Closed")

        assert store.get_issue(issue.id).status == "Open"

    def test_forbidden_checked_before_validation(
        self, service: IssueService, technician, issue
    ) -> None:
        """An unauthorized actor gets ForbiddenError even for a bad status."""
        with pytest.raises(ForbiddenError):
            service.update_status(technician, issue.id, "Closed")

    def test_stale_version_conflict(
        self, service: IssueService, store: IssueStore, admin, reporter, issue, mock_event_manager
    ) -> None:
        """A stale expected_version is rejected with no side effects."""
        service.update_status(admin, issue.id, "In Progress")
        mock_event_manager.reset_mock()

        with pytest.raises(ConflictError):
            service.update_status(admin, issue.id, "Resolved", expected_version=1)

        assert store.get_issue(issue.id).status == "In Progress"
        assert len(_texts(store, reporter)) == 1
        mock_event_manager.emit_issue_updated.assert_not_called()

    def test_reassigned_after_authorization_conflicts(
        self, store: IssueStore, admin, technician, issue, mock_event_manager
    ) -> None:
        """Losing the assignment between the check and the write rejects the move."""
        store.update_issue(issue.id, assigned_to="Bob")

        def get_then_reassign(issue_id: str):
            snapshot = store.get_issue(issue_id)
            store.update_issue(issue_id, assigned_to="Carol")
            return snapshot

        racing = MagicMock(wraps=store)
        racing.get_issue.side_effect = get_then_reassign
        service = IssueService(store=racing, event_manager=mock_event_manager)

        with pytest.raises(ConflictError):
            service.update_status(technician, issue.id, "Resolved")

        current = store.get_issue(issue.id)
        assert current.status == "Open"
        assert current.assigned_to == "Carol"
        mock_event_manager.emit_issue_updated.assert_not_called()

    def test_store_failure_has_no_side_effects(
        self, store: IssueStore, admin, reporter, issue, mock_event_manager
    ) -> None:
        """If the commit fails nothing is notified or broadcast."""
        failing = MagicMock(wraps=store)
        failing.update_issue.side_effect = TransientStoreError("db locked")
        service = IssueService(store=failing, event_manager=mock_event_manager)

        with pytest.raises(TransientStoreError):
            service.update_status(admin, issue.id, "Resolved")

        assert _texts(store, reporter) == []
        mock_event_manager.emit_issue_updated.assert_not_called()

    def test_broadcast_failure_not_surfaced(
        self, service: IssueService, admin, issue, mock_event_manager
    ) -> None:
        """A failing broadcast does not fail the mutation."""
        mock_event_manager.emit_issue_updated.side_effect = RuntimeError("boom")

        updated = service.update_status(admin, issue.id, "Resolved")

        assert updated.status == "Resolved"


@pytest.mark.unit
class TestAssign:
    """Tests for IssueService.assign."""

    def test_assign_known_user(
        self, service: IssueService, store: IssueStore, admin, technician, issue, mock_event_manager
    ) -> None:
        """Assignee notified once, issue broadcast, hint sent to the assignee."""
        updated = service.assign(admin, issue.id, "Bob")

        assert updated.assigned_to == "Bob"
        assert _texts(store, technician) == ["You have been assigned to issue: Printer jam"]
        mock_event_manager.emit_issue_updated.assert_called_once()
        recipients, data = mock_event_manager.emit_notification.call_args.args
        assert list(recipients) == [technician.id]
        assert data["issue_id"] == issue.id

    def test_assign_unknown_name(
        self, service: IssueService, store: IssueStore, admin, issue, mock_event_manager
    ) -> None:
        """Unknown names are stored, without notification or error."""
        updated = service.assign(admin, issue.id, "Nobody")

        assert updated.assigned_to == "Nobody"
        mock_event_manager.emit_issue_updated.assert_called_once()
        mock_event_manager.emit_notification.assert_not_called()

    def test_unassign(self, service: IssueService, admin, issue, mock_event_manager) -> None:
        """Empty name clears the assignment."""
        service.assign(admin, issue.id, "Bob")

        updated = service.assign(admin, issue.id, "")

        assert updated.assigned_to == ""

    def test_assign_self_not_notified(
        self, service: IssueService, store: IssueStore, admin, issue, mock_event_manager
    ) -> None:
        """An admin assigning themselves gets no notification."""
        service.assign(admin, issue.id, admin.name)

        assert _texts(store, admin) == []
        mock_event_manager.emit_notification.assert_not_called()

    def test_non_admin_forbidden(
        self, service: IssueService, store: IssueStore, technician, issue
    ) -> None:
        """ForbiddenError for non-admins; assignment unchanged."""
        with pytest.raises(ForbiddenError):
            service.assign(technician, issue.id, "Bob")

        assert store.get_issue(issue.id).assigned_to == ""

    def test_non_admin_forbidden_before_lookup(self, service: IssueService, technician) -> None:
        """Authorization is checked before the issue is loaded."""
        with pytest.raises(ForbiddenError):
            service.assign(technician, "nonexistent", "Bob")

    def test_not_found(self, service: IssueService, admin) -> None:
        """IssueNotFoundError for bad id."""
        with pytest.raises(IssueNotFoundError):
            service.assign(admin, "nonexistent", "Bob")


@pytest.mark.unit
class TestAddComment:
    """Tests for IssueService.add_comment."""

    def test_comment_notifies_creator_and_assignee(
        self,
        service: IssueService,
        store: IssueStore,
        admin,
        reporter,
        technician,
        issue,
        mock_event_manager,
    ) -> None:
        """Creator and assignee each get one notification; both get the hint."""
        store.update_issue(issue.id, assigned_to="Bob")

        updated = service.add_comment(admin, issue.id, "Looking into it")

        assert [c.text for c in updated.comments] == ["Looking into it"]
        assert updated.comments[0].user == "Admin User"
        assert _texts(store, reporter) == ["New comment on your issue: Printer jam"]
        assert _texts(store, technician) == ["New comment on assigned issue: Printer jam"]
        recipients, data = mock_event_manager.emit_notification.call_args.args
        assert sorted(recipients) == sorted([reporter.id, technician.id])
        assert data == {"type": "comment", "issue_id": issue.id}

    def test_creator_commenting_not_notified(
        self, service: IssueService, store: IssueStore, reporter, issue, mock_event_manager
    ) -> None:
        """No self-notification and no hint when nobody else is involved."""
        service.add_comment(reporter, issue.id, "Any update?")

        assert _texts(store, reporter) == []
        mock_event_manager.emit_issue_updated.assert_called_once()
        mock_event_manager.emit_notification.assert_not_called()

    def test_assignee_commenting_not_notified(
        self, service: IssueService, store: IssueStore, reporter, technician, issue
    ) -> None:
        """The assignee is skipped when they are the commenter."""
        store.update_issue(issue.id, assigned_to="Bob")

        service.add_comment(technician, issue.id, "Fixed the tray")

        assert _texts(store, technician) == []
        assert len(_texts(store, reporter)) == 1

    def test_comments_preserve_order(self, service: IssueService, reporter, admin, issue) -> None:
        """Each call appends exactly one entry after the existing ones."""
        service.add_comment(reporter, issue.id, "first")
        updated = service.add_comment(admin, issue.id, "second")

        assert [c.text for c in updated.comments] == ["first", "second"]

    def test_empty_text(self, service: IssueService, reporter, issue) -> None:
        """ValidationError for empty text."""
        with pytest.raises(ValidationError):
            service.add_comment(reporter, issue.id, "   ")

    def test_not_found(self, service: IssueService, reporter) -> None:
        """IssueNotFoundError for bad id."""
        with pytest.raises(IssueNotFoundError):
            service.add_comment(reporter, "nonexistent", "hi")


@pytest.mark.unit
class TestReads:
    """Tests for the read operations."""

    def test_list_all_admin_only(self, service: IssueService, technician, admin, issue) -> None:
        """Non-admins are forbidden; admins get the page."""
        with pytest.raises(ForbiddenError):
            service.list_all(technician)

        page = service.list_all(admin)
        assert page.total == 1

    def test_list_mine(self, service: IssueService, reporter, admin, issue) -> None:
        """Only the actor's own issues."""
        assert [i.id for i in service.list_mine(reporter)] == [issue.id]
        assert service.list_mine(admin) == []

    def test_stats_scoped_by_role(self, service: IssueService, reporter, admin, issue) -> None:
        """Admins see all issues, others their own."""
        assert service.stats(admin).total == 1
        assert service.stats(reporter).total == 1

    def test_get(self, service: IssueService, technician, issue) -> None:
        """Any user can read an issue."""
        assert service.get(technician, issue.id).id == issue.id
