"""BoardController - Client-side Kanban board state with optimistic moves."""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from issueboard.issue_store.exceptions import IssueStoreError, TransientStoreError
from issueboard.issue_store.models import IssueStatus

if TYPE_CHECKING:
    from collections.abc import Callable

    from issueboard.board.client import IssueBoardClient

logger = logging.getLogger(__name__)

COLUMNS: tuple[str, ...] = tuple(status.value for status in IssueStatus)


class DragState(StrEnum):
    """Transient drag state of the board."""

    IDLE = "idle"
    DRAGGING = "dragging"


class MoveFailedError(Exception):
    """A drag-and-drop move was rejected and has been reverted."""

    def __init__(self, issue_id: str, target_status: str, cause: IssueStoreError) -> None:
        super().__init__(f"Failed to move issue {issue_id} to {target_status}: {cause}")
        self.issue_id = issue_id
        self.target_status = target_status
        self.cause = cause


class BoardController:
    """Local view of the issue board, kept in sync with the server.

    Issues are the JSON payloads returned by the API. Moves are applied
    locally before the server confirms them and reverted if it refuses.
    Live events are merged by issue id; a payload older than the local copy
    (lower version) is ignored, anything else replaces it.

    Args:
        client: API client used for fetches, moves and the event stream.
        is_admin: Admins see every issue, others only their own.
        on_notification: Called with the hint payload of each `notification`
            event.
        on_error: Called with a message whenever a move is reverted.
    """

    def __init__(
        self,
        client: IssueBoardClient,
        is_admin: bool = False,
        on_notification: Callable[[dict[str, Any]], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        self.client = client
        self.is_admin = is_admin
        self.on_notification = on_notification
        self.on_error = on_error
        self.issues: list[dict[str, Any]] = []
        self.drag_state = DragState.IDLE
        self.active_id: str | None = None
        self.errors: list[str] = []
        self.unread_hints = 0

    # --- State ---

    async def load(self) -> list[dict[str, Any]]:
        """Replace local state with the server's current issues."""
        if self.is_admin:
            data = await self.client.list_all_issues()
        else:
            data = await self.client.list_my_issues()
        # Paginated {issues, ...} for admins, a bare list otherwise
        self.issues = list(data["issues"] if isinstance(data, dict) else data)
        logger.debug("Board loaded with %d issues", len(self.issues))
        return self.issues

    def find(self, issue_id: str) -> dict[str, Any] | None:
        return next((i for i in self.issues if i["id"] == issue_id), None)

    def columns(self) -> dict[str, list[dict[str, Any]]]:
        """Issues grouped by status, in board column order."""
        grouped: dict[str, list[dict[str, Any]]] = {column: [] for column in COLUMNS}
        for issue in self.issues:
            if issue["status"] in grouped:
                grouped[issue["status"]].append(issue)
        return grouped

    def _set_status(self, issue_id: str, status: str) -> None:
        self.issues = [
            {**issue, "status": status} if issue["id"] == issue_id else issue
            for issue in self.issues
        ]

    def merge_issue(self, incoming: dict[str, Any]) -> None:
        """Replace the issue with the same id, or prepend it if unknown."""
        for index, current in enumerate(self.issues):
            if current["id"] != incoming["id"]:
                continue
            if incoming.get("version", 0) < current.get("version", 0):
                logger.debug("Ignoring stale update for issue %s", incoming["id"])
                return
            self.issues = [*self.issues[:index], incoming, *self.issues[index + 1 :]]
            return
        self.issues = [incoming, *self.issues]

    def apply_event(self, event: str, data: dict[str, Any]) -> None:
        """Merge one live event into local state."""
        if event == "issueUpdated":
            self.merge_issue(data)
        elif event == "notification":
            self.unread_hints += 1
            if self.on_notification is not None:
                self.on_notification(data)

    # --- Drag and drop ---

    def begin_drag(self, issue_id: str) -> None:
        if self.find(issue_id) is None:
            raise KeyError(issue_id)
        self.active_id = issue_id
        self.drag_state = DragState.DRAGGING

    def cancel_drag(self) -> None:
        self.active_id = None
        self.drag_state = DragState.IDLE

    def resolve_target(self, target: str) -> str | None:
        """Map a drop target (a column or a card) to a status."""
        if target in COLUMNS:
            return target
        card = self.find(target)
        return card["status"] if card is not None else None

    async def drop(self, target: str | None) -> dict[str, Any] | None:
        """Finish the current drag over `target`; None means outside the board."""
        issue_id = self.active_id
        self.cancel_drag()
        if issue_id is None or target is None:
            return None
        return await self.move(issue_id, target)

    async def move(self, issue_id: str, target: str) -> dict[str, Any] | None:
        """Move a card to the column of `target`, optimistically.

        Returns:
            The server's copy of the issue, or None if nothing needed moving.

        Raises:
            MoveFailedError: The server refused or could not be reached. The
                card is back in its previous column.
        """
        new_status = self.resolve_target(target)
        issue = self.find(issue_id)
        if new_status is None or issue is None or issue["status"] == new_status:
            return None

        previous = issue["status"]
        self._set_status(issue_id, new_status)
        try:
            updated = await self.client.update_status(
                issue_id, new_status, expected_version=issue.get("version")
            )
        except IssueStoreError as e:
            self._revert(issue_id, new_status, previous)
            message = f"Failed to update status: {e}"
            self.errors.append(message)
            if self.on_error is not None:
                self.on_error(message)
            raise MoveFailedError(issue_id, new_status, e) from e

        logger.debug("Moved issue %s to %s", issue_id, new_status)
        return updated

    def _revert(self, issue_id: str, optimistic: str, previous: str) -> None:
        current = self.find(issue_id)
        # A live update that landed meanwhile is authoritative; keep it
        if current is not None and current["status"] == optimistic:
            self._set_status(issue_id, previous)

    # --- Live updates ---

    async def listen(self, reconnect_delay: float = 1.0, max_connections: int | None = None) -> None:
        """Follow the event stream, resyncing the baseline on every connect.

        Runs until cancelled, or until `max_connections` streams have ended.
        """
        connections = 0
        while max_connections is None or connections < max_connections:
            connections += 1
            try:
                async with self.client.event_stream() as events:
                    await self.load()
                    async for event in events:
                        self.apply_event(event.event, event.json())
            except TransientStoreError as e:
                logger.warning("Event stream interrupted: %s", e)
            if max_connections is None or connections < max_connections:
                await asyncio.sleep(reconnect_delay)
