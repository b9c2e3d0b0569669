"""Issue Store - Persistent storage for users, issues, comments and notifications."""

from issueboard.issue_store.exceptions import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    IssueNotFoundError,
    IssueStoreError,
    NotificationNotFoundError,
    TransientStoreError,
    UserExistsError,
    UserNotFoundError,
    ValidationError,
)
from issueboard.issue_store.models import (
    Comment,
    Issue,
    IssueCategory,
    IssuePage,
    IssuePriority,
    IssueStats,
    IssueStatus,
    Notification,
    NotificationKind,
    User,
    UserRole,
)
from issueboard.issue_store.store import NOTIFICATION_INBOX_LIMIT, IssueStore

__all__ = [
    "NOTIFICATION_INBOX_LIMIT",
    "AuthenticationError",
    "Comment",
    "ConflictError",
    "ForbiddenError",
    "Issue",
    "IssueCategory",
    "IssueNotFoundError",
    "IssuePage",
    "IssuePriority",
    "IssueStats",
    "IssueStatus",
    "IssueStore",
    "IssueStoreError",
    "Notification",
    "NotificationKind",
    "NotificationNotFoundError",
    "TransientStoreError",
    "User",
    "UserExistsError",
    "UserNotFoundError",
    "UserRole",
    "ValidationError",
]
