"""Pydantic models for REST API."""

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    data: T | None = None
    error: str | None = None


# Issue models


class IssueCreate(BaseModel):
    """Request model for filing an issue.

    Fields are optional here so that missing values reach the service and
    are reported as validation errors in the standard envelope.
    """

    title: str | None = None
    description: str | None = None
    category: str | None = None
    priority: str | None = None


class StatusUpdate(BaseModel):
    """Request model for a status transition."""

    status: str | None = None
    expected_version: int | None = Field(default=None, ge=1)


class AssignRequest(BaseModel):
    """Request model for (un)assigning an issue."""

    assigned_to: str = Field(default="", max_length=255)


class CommentCreate(BaseModel):
    """Request model for adding a comment."""

    text: str | None = None


class UserSummary(BaseModel):
    """Populated creator of an issue."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str


class CommentResponse(BaseModel):
    """Response model for one comment."""

    model_config = ConfigDict(from_attributes=True)

    user: str
    text: str
    created_at: datetime


class IssueResponse(BaseModel):
    """Response model for an issue. Also the `issueUpdated` event payload."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    category: str
    priority: str
    status: str
    created_by: str
    creator: UserSummary | None = None
    assigned_to: str
    comments: list[CommentResponse]
    version: int
    created_at: datetime
    updated_at: datetime


def issue_to_response(issue: Any) -> IssueResponse:
    """Convert an Issue model to IssueResponse."""
    return IssueResponse.model_validate(issue)


class IssuePageResponse(BaseModel):
    """Response model for the paginated all-issues listing."""

    issues: list[IssueResponse]
    page: int
    pages: int
    total: int


def issue_page_to_response(page: Any) -> IssuePageResponse:
    """Convert an IssuePage to IssuePageResponse."""
    return IssuePageResponse(
        issues=[issue_to_response(i) for i in page.issues],
        page=page.page,
        pages=page.pages,
        total=page.total,
    )


class IssueStatsResponse(BaseModel):
    """Response model for issue statistics."""

    model_config = ConfigDict(from_attributes=True)

    total: int
    by_status: dict[str, int]
    by_priority: dict[str, int]
    by_category: dict[str, int]


def issue_stats_to_response(stats: Any) -> IssueStatsResponse:
    """Convert an IssueStats to IssueStatsResponse."""
    return IssueStatsResponse.model_validate(stats)


# Notification models


class NotificationResponse(BaseModel):
    """Response model for a notification."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    recipient_id: str
    text: str
    related_issue_id: str | None
    kind: str
    is_read: bool
    created_at: datetime


def notification_to_response(notification: Any) -> NotificationResponse:
    """Convert a Notification model to NotificationResponse."""
    return NotificationResponse.model_validate(notification)


class MarkAllReadResponse(BaseModel):
    """Response model for marking every notification read."""

    updated: int
