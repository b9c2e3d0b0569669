"""Notification inbox endpoints."""

from fastapi import APIRouter

from issueboard.api.dependencies import CurrentUserDep, IssueStoreDep
from issueboard.api.models import (
    APIResponse,
    MarkAllReadResponse,
    NotificationResponse,
    notification_to_response,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=APIResponse[list[NotificationResponse]])
def list_notifications(
    user: CurrentUserDep, store: IssueStoreDep
) -> APIResponse[list[NotificationResponse]]:
    """The caller's 20 most recent notifications, newest first."""
    notifications = store.list_notifications(user.id)
    return APIResponse(data=[notification_to_response(n) for n in notifications])


@router.put("/read-all", response_model=APIResponse[MarkAllReadResponse])
def mark_all_read(user: CurrentUserDep, store: IssueStoreDep) -> APIResponse[MarkAllReadResponse]:
    """Mark all of the caller's notifications read."""
    updated = store.mark_all_notifications_read(user.id)
    return APIResponse(data=MarkAllReadResponse(updated=updated))


@router.put("/{notification_id}/read", response_model=APIResponse[NotificationResponse])
def mark_read(
    notification_id: str, user: CurrentUserDep, store: IssueStoreDep
) -> APIResponse[NotificationResponse]:
    """Mark one of the caller's notifications read."""
    notification = store.mark_notification_read(user.id, notification_id)
    return APIResponse(data=notification_to_response(notification))
