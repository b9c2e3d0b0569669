"""IssueStore - Main API for Issue Store operations."""

from __future__ import annotations

import logging
import math
from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from issueboard.issue_store.database import Database
from issueboard.issue_store.exceptions import (
    ConflictError,
    ForbiddenError,
    IssueNotFoundError,
    NotificationNotFoundError,
    TransientStoreError,
    UserExistsError,
    UserNotFoundError,
)
from issueboard.issue_store.models import (
    Comment,
    Issue,
    IssuePage,
    IssuePriority,
    IssueStats,
    IssueStatus,
    Notification,
    NotificationKind,
    User,
    UserRole,
    utcnow,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

NOTIFICATION_INBOX_LIMIT = 20


class IssueStore:
    """Main API for Issue Store operations.

    Every method opens its own session, commits or rolls back, and returns
    detached objects. Database failures surface as TransientStoreError and
    lost version races as ConflictError.
    """

    def __init__(self, db_path: str = "issueboard.db") -> None:
        """Initialize the store, creating tables if they don't exist.

        Args:
            db_path: Path to SQLite database file, or ":memory:"
        """
        self._db = Database(db_path)
        self._db.create_tables()

    @property
    def database(self) -> Database:
        return self._db

    def close(self) -> None:
        """Close the database connection."""
        self._db.close()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._db.get_session()
        try:
            yield session
        except StaleDataError as e:
            session.rollback()
            raise ConflictError("Issue was modified concurrently") from e
        except OperationalError as e:
            session.rollback()
            logger.warning("Store operation failed: %s", e)
            raise TransientStoreError("Database temporarily unavailable") from e
        finally:
            session.close()

    # --- User Operations ---

    def create_user(self, name: str, email: str, role: UserRole = UserRole.USER) -> User:
        """Create a new user with a fresh API token.

        Raises:
            UserExistsError: If a user with the same email already exists
        """
        with self._session() as session:
            user = User(name=name, email=email, role=role.value)
            session.add(user)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise UserExistsError(f"User with email '{email}' already exists") from e
            session.refresh(user)
            return user

    def get_user(self, user_id: str) -> User:
        """Get user by ID.

        Raises:
            UserNotFoundError: If user doesn't exist
        """
        with self._session() as session:
            user = session.get(User, user_id)
            if user is None:
                raise UserNotFoundError(f"User with id '{user_id}' not found")
            return user

    def get_user_by_token(self, token: str) -> User | None:
        """Resolve an API token to its user, or None."""
        with self._session() as session:
            stmt = select(User).where(User.api_token == token)
            return session.execute(stmt).scalar_one_or_none()

    def get_user_by_email(self, email: str) -> User | None:
        """Look up a user by email, or None."""
        with self._session() as session:
            stmt = select(User).where(User.email == email)
            return session.execute(stmt).scalar_one_or_none()

    def find_user_by_name(self, name: str) -> User | None:
        """Resolve a display name to a user, or None.

        Names are not unique; the oldest account with the name wins.
        """
        if not name:
            return None
        with self._session() as session:
            stmt = select(User).where(User.name == name).order_by(User.created_at).limit(1)
            return session.execute(stmt).scalar_one_or_none()

    def update_user_role(self, user_id: str, role: UserRole) -> User:
        """Change a user's role.

        Raises:
            UserNotFoundError: If user doesn't exist
        """
        with self._session() as session:
            user = session.get(User, user_id)
            if user is None:
                raise UserNotFoundError(f"User with id '{user_id}' not found")
            user.role = role.value
            session.commit()
            session.refresh(user)
            return user

    # --- Issue Operations ---

    def create_issue(
        self,
        title: str,
        description: str,
        category: str,
        priority: str,
        created_by: str,
    ) -> Issue:
        """Create a new issue in the Open column, unassigned and without comments.

        Raises:
            UserNotFoundError: If the creator doesn't exist
        """
        with self._session() as session:
            if session.get(User, created_by) is None:
                raise UserNotFoundError(f"User with id '{created_by}' not found")
            issue = Issue(
                title=title,
                description=description,
                category=category,
                priority=priority,
                created_by=created_by,
            )
            session.add(issue)
            session.commit()
            session.refresh(issue)
            return issue

    def get_issue(self, issue_id: str) -> Issue:
        """Get issue by ID, with creator and comments loaded.

        Raises:
            IssueNotFoundError: If issue doesn't exist
        """
        with self._session() as session:
            issue = session.get(Issue, issue_id)
            if issue is None:
                raise IssueNotFoundError(f"Issue with id '{issue_id}' not found")
            return issue

    def list_issues_by_creator(self, user_id: str) -> list[Issue]:
        """List a user's own issues, most recent first."""
        with self._session() as session:
            stmt = (
                select(Issue)
                .where(Issue.created_by == user_id)
                .order_by(Issue.created_at.desc())
            )
            return list(session.execute(stmt).scalars().all())

    def list_issues(self, page: int = 1, limit: int = 100) -> IssuePage:
        """List all issues, most recent first, one page at a time.

        Args:
            page: 1-based page number
            limit: Page size

        Returns:
            IssuePage with the page's issues and the overall totals
        """
        with self._session() as session:
            total = session.execute(select(func.count(Issue.id))).scalar_one()
            stmt = (
                select(Issue)
                .order_by(Issue.created_at.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            issues = list(session.execute(stmt).scalars().all())
            return IssuePage(
                issues=issues,
                page=page,
                pages=math.ceil(total / limit),
                total=total,
            )

    def update_issue(
        self,
        issue_id: str,
        status: IssueStatus | None = None,
        assigned_to: str | None = None,
        expected_version: int | None = None,
    ) -> Issue:
        """Update issue status and/or assignment. Only provided fields change.

        Args:
            issue_id: The issue's unique ID
            status: New status (optional)
            assigned_to: New assignee display name, "" to unassign (optional)
            expected_version: Version the caller last read (optional)

        Returns:
            The updated Issue with its version bumped

        Raises:
            IssueNotFoundError: If issue doesn't exist
            ConflictError: If expected_version is stale or a concurrent
                write landed first
        """
        with self._session() as session:
            issue = session.get(Issue, issue_id)
            if issue is None:
                raise IssueNotFoundError(f"Issue with id '{issue_id}' not found")
            if expected_version is not None and issue.version != expected_version:
                raise ConflictError(
                    f"Issue '{issue_id}' is at version {issue.version}, "
                    f"expected {expected_version}"
                )

            if status is not None:
                issue.status = status.value
            if assigned_to is not None:
                issue.assigned_to = assigned_to
            # A no-op change still counts as a mutation
            issue.updated_at = utcnow()

            session.commit()
            session.refresh(issue)
            return issue

    def append_comment(self, issue_id: str, user: str, text: str) -> Issue:
        """Append a comment to an issue's thread.

        The comment is its own row, so concurrent appends never overwrite
        each other; the issue's version is bumped with an atomic increment.

        Raises:
            IssueNotFoundError: If issue doesn't exist
        """
        with self._session() as session:
            issue = session.get(Issue, issue_id)
            if issue is None:
                raise IssueNotFoundError(f"Issue with id '{issue_id}' not found")

            session.add(Comment(user=user, text=text, issue_id=issue_id))
            session.execute(
                update(Issue)
                .where(Issue.id == issue_id)
                .values(updated_at=utcnow(), version=Issue.version + 1)
                .execution_options(synchronize_session=False)
            )
            session.commit()
            session.refresh(issue)
            session.refresh(issue, ["comments"])
            return issue

    def get_issue_stats(self, created_by: str | None = None) -> IssueStats:
        """Count issues by status, priority and category.

        Args:
            created_by: Restrict to one user's issues (None = all)
        """
        with self._session() as session:

            def grouped(column: object) -> dict[str, int]:
                stmt = select(column, func.count(Issue.id)).group_by(column)
                if created_by is not None:
                    stmt = stmt.where(Issue.created_by == created_by)
                return {key: count for key, count in session.execute(stmt).all()}

            by_status = {s.value: 0 for s in IssueStatus} | grouped(Issue.status)
            by_priority = {p.value: 0 for p in IssuePriority} | grouped(Issue.priority)
            by_category = grouped(Issue.category)
            return IssueStats(
                total=sum(by_status.values()),
                by_status=by_status,
                by_priority=by_priority,
                by_category=by_category,
            )

    # --- Notification Operations ---

    def create_notification(
        self,
        recipient_id: str,
        text: str,
        related_issue_id: str | None = None,
        kind: NotificationKind = NotificationKind.INFO,
    ) -> Notification:
        """Add a notification to a recipient's inbox."""
        with self._session() as session:
            notification = Notification(
                recipient_id=recipient_id,
                text=text,
                related_issue_id=related_issue_id,
                kind=kind.value,
            )
            session.add(notification)
            session.commit()
            session.refresh(notification)
            return notification

    def list_notifications(
        self, recipient_id: str, limit: int = NOTIFICATION_INBOX_LIMIT
    ) -> list[Notification]:
        """List a recipient's notifications, newest first, capped at `limit`."""
        with self._session() as session:
            stmt = (
                select(Notification)
                .where(Notification.recipient_id == recipient_id)
                .order_by(Notification.created_at.desc())
                .limit(limit)
            )
            return list(session.execute(stmt).scalars().all())

    def mark_notification_read(self, recipient_id: str, notification_id: str) -> Notification:
        """Mark one notification read. Marking it again is a no-op.

        Raises:
            NotificationNotFoundError: If notification doesn't exist
            ForbiddenError: If it belongs to someone else
        """
        with self._session() as session:
            notification = session.get(Notification, notification_id)
            if notification is None:
                raise NotificationNotFoundError(
                    f"Notification with id '{notification_id}' not found"
                )
            if notification.recipient_id != recipient_id:
                raise ForbiddenError("Not authorized to modify this notification")

            if not notification.is_read:
                notification.is_read = True
                session.commit()
                session.refresh(notification)
            return notification

    def mark_all_notifications_read(self, recipient_id: str) -> int:
        """Mark every unread notification of a recipient read.

        Returns:
            Number of notifications that changed
        """
        with self._session() as session:
            result = session.execute(
                update(Notification)
                .where(
                    Notification.recipient_id == recipient_id,
                    Notification.is_read.is_(False),
                )
                .values(is_read=True)
                .execution_options(synchronize_session=False)
            )
            session.commit()
            return result.rowcount or 0
