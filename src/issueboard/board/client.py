"""IssueBoardClient - Async HTTP client for the IssueBoard API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import httpx

from issueboard.board.sse import ServerSentEvent, iter_sse
from issueboard.issue_store.exceptions import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    IssueNotFoundError,
    IssueStoreError,
    NotificationNotFoundError,
    TransientStoreError,
    ValidationError,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0

_ERRORS_BY_STATUS: dict[int, type[IssueStoreError]] = {
    400: ValidationError,
    401: AuthenticationError,
    403: ForbiddenError,
    404: IssueNotFoundError,
    409: ConflictError,
    422: ValidationError,
}


class IssueBoardClient:
    """Client for the IssueBoard REST API and event stream.

    Every failure is raised as one of the store exceptions, so callers
    handle remote and local errors the same way. Timeouts and connection
    failures become TransientStoreError.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Server root, e.g. "http://127.0.0.1:8000"
            token: API token sent as a bearer token
            timeout: Per-request timeout in seconds
            transport: Alternate transport (for testing)
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _error_for(
        response: httpx.Response,
        not_found: type[IssueStoreError] = IssueNotFoundError,
    ) -> IssueStoreError:
        try:
            message = response.json().get("error") or response.reason_phrase
        except ValueError:
            message = response.reason_phrase
        if response.status_code == 404:
            return not_found(message)
        if response.status_code >= 500:
            return TransientStoreError(message)
        return _ERRORS_BY_STATUS.get(response.status_code, IssueStoreError)(message)

    async def _request(
        self,
        method: str,
        path: str,
        not_found: type[IssueStoreError] = IssueNotFoundError,
        **kwargs: Any,
    ) -> Any:
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise TransientStoreError(f"{method} {path} timed out") from e
        except httpx.TransportError as e:
            raise TransientStoreError(f"{method} {path} failed: {e}") from e

        if response.is_error:
            error = self._error_for(response, not_found)
            logger.debug("%s %s -> %s: %s", method, path, response.status_code, error)
            raise error
        return response.json().get("data")

    # --- Issues ---

    async def create_issue(
        self, title: str, description: str, category: str, priority: str
    ) -> dict[str, Any]:
        """File a new issue."""
        return await self._request(
            "POST",
            "/api/issues",
            json={
                "title": title,
                "description": description,
                "category": category,
                "priority": priority,
            },
        )

    async def list_all_issues(self, page: int = 1, limit: int = 100) -> dict[str, Any]:
        """One page of all issues: {issues, page, pages, total}."""
        return await self._request("GET", "/api/issues", params={"page": page, "limit": limit})

    async def list_my_issues(self) -> list[dict[str, Any]]:
        """The caller's own issues."""
        return await self._request("GET", "/api/issues/my")

    async def get_issue(self, issue_id: str) -> dict[str, Any]:
        """Fetch one issue."""
        return await self._request("GET", f"/api/issues/{issue_id}")

    async def update_status(
        self, issue_id: str, status: str, expected_version: int | None = None
    ) -> dict[str, Any]:
        """Request a status transition."""
        body: dict[str, Any] = {"status": status}
        if expected_version is not None:
            body["expected_version"] = expected_version
        return await self._request("PUT", f"/api/issues/{issue_id}/status", json=body)

    async def assign(self, issue_id: str, assigned_to: str) -> dict[str, Any]:
        """Assign an issue by display name ("" to unassign)."""
        return await self._request(
            "PUT", f"/api/issues/{issue_id}/assign", json={"assigned_to": assigned_to}
        )

    async def add_comment(self, issue_id: str, text: str) -> dict[str, Any]:
        """Append a comment."""
        return await self._request("POST", f"/api/issues/{issue_id}/comment", json={"text": text})

    # --- Notifications ---

    async def list_notifications(self) -> list[dict[str, Any]]:
        """The caller's latest notifications."""
        return await self._request("GET", "/api/notifications")

    async def mark_read(self, notification_id: str) -> dict[str, Any]:
        """Mark one notification read."""
        return await self._request(
            "PUT",
            f"/api/notifications/{notification_id}/read",
            not_found=NotificationNotFoundError,
        )

    async def mark_all_read(self) -> int:
        """Mark all notifications read. Returns how many changed."""
        data = await self._request("PUT", "/api/notifications/read-all")
        return int(data["updated"])

    # --- Events ---

    @asynccontextmanager
    async def event_stream(self) -> AsyncIterator[AsyncIterator[ServerSentEvent]]:
        """Open the live event stream.

        The subscription is active once the context is entered, so a
        baseline fetched inside the context cannot miss an event.
        """
        try:
            async with self.client.stream(
                "GET",
                "/api/events/stream",
                timeout=httpx.Timeout(self.timeout, read=None),
            ) as response:
                if response.is_error:
                    await response.aread()
                    raise self._error_for(response)
                yield iter_sse(response.aiter_lines())
        except httpx.TransportError as e:
            raise TransientStoreError(f"Event stream failed: {e}") from e
