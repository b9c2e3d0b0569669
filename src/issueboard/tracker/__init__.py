"""Tracker package - Issue state machine, authorization and notifications."""

from issueboard.tracker.notifier import Notifier
from issueboard.tracker.policy import Action, authorize, can_transition, is_assignee
from issueboard.tracker.service import IssueService

__all__ = [
    "Action",
    "IssueService",
    "Notifier",
    "authorize",
    "can_transition",
    "is_assignee",
]
