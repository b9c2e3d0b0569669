"""Custom exceptions for the Issue Store and the services built on it."""


class IssueStoreError(Exception):
    """Base exception for Issue Store errors."""


class ValidationError(IssueStoreError):
    """Missing or malformed input. The caller can correct and resend."""


class AuthenticationError(IssueStoreError):
    """No valid API token was presented."""


class ForbiddenError(IssueStoreError):
    """The actor is not allowed to perform the requested action."""


class IssueNotFoundError(IssueStoreError):
    """Issue with given ID does not exist."""


class NotificationNotFoundError(IssueStoreError):
    """Notification with given ID does not exist."""


class UserNotFoundError(IssueStoreError):
    """User with given ID does not exist."""


class UserExistsError(IssueStoreError):
    """User with given email already exists."""


class ConflictError(IssueStoreError):
    """The issue changed since the caller read it."""


class TransientStoreError(IssueStoreError):
    """The database could not complete the operation. Safe to retry."""
