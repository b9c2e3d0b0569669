"""REST API and live event stream for IssueBoard."""

from issueboard.api.app import app, create_app
from issueboard.api.models import (
    APIResponse,
    IssueCreate,
    IssueResponse,
    NotificationResponse,
)

__all__ = [
    "APIResponse",
    "IssueCreate",
    "IssueResponse",
    "NotificationResponse",
    "app",
    "create_app",
]
