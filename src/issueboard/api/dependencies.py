"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

import logging
from collections.abc import Generator  # noqa: TC003
from typing import Annotated

from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from issueboard.api.events import EventManager
from issueboard.issue_store import AuthenticationError, IssueStore, User
from issueboard.logging import sanitize_for_log
from issueboard.tracker import IssueService

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)

# Global IssueStore instance (initialized on app startup)
_issue_store: IssueStore | None = None


def init_issue_store(db_path: str = "issueboard.db") -> IssueStore:
    """Initialize the global IssueStore instance."""
    global _issue_store  # noqa: PLW0603
    _issue_store = IssueStore(db_path)
    return _issue_store


def close_issue_store() -> None:
    """Close the global IssueStore instance."""
    global _issue_store  # noqa: PLW0603
    if _issue_store is not None:
        _issue_store.close()
        _issue_store = None


def get_issue_store() -> Generator[IssueStore, None, None]:
    """Dependency that provides the IssueStore instance."""
    if _issue_store is None:
        raise RuntimeError("IssueStore not initialized. Call init_issue_store() first.")
    yield _issue_store


# Type alias for dependency injection
IssueStoreDep = Annotated[IssueStore, Depends(get_issue_store)]

# Global EventManager instance
_event_manager: EventManager | None = None


def init_event_manager(heartbeat_interval: float = 30) -> EventManager:
    """Initialize the global EventManager instance."""
    global _event_manager  # noqa: PLW0603
    _event_manager = EventManager(_heartbeat_interval=heartbeat_interval)
    return _event_manager


def close_event_manager() -> None:
    """Drop the global EventManager instance."""
    global _event_manager  # noqa: PLW0603
    _event_manager = None


def get_event_manager() -> Generator[EventManager, None, None]:
    """Dependency that provides the EventManager instance."""
    if _event_manager is None:
        raise RuntimeError("EventManager not initialized. Call init_event_manager() first.")
    yield _event_manager


# Type alias for dependency injection
EventManagerDep = Annotated[EventManager, Depends(get_event_manager)]

# Global IssueService instance (initialized on app startup)
_issue_service: IssueService | None = None


def init_issue_service(service: IssueService) -> None:
    """Initialize the global IssueService instance."""
    global _issue_service  # noqa: PLW0603
    _issue_service = service


def close_issue_service() -> None:
    """Drop the global IssueService instance."""
    global _issue_service  # noqa: PLW0603
    _issue_service = None


def get_issue_service() -> Generator[IssueService, None, None]:
    """Dependency that provides the IssueService instance."""
    if _issue_service is None:
        raise RuntimeError("IssueService not initialized. Call init_issue_service() first.")
    yield _issue_service


# Type alias for dependency injection
IssueServiceDep = Annotated[IssueService, Depends(get_issue_service)]


def _authenticate(store: IssueStore, token: str | None) -> User:
    if not token:
        raise AuthenticationError("Not authorized, no token")
    user = store.get_user_by_token(token)
    if user is None:
        logger.info("Rejected unknown token %s", sanitize_for_log(token))
        raise AuthenticationError("Not authorized, token failed")
    return user


def get_current_user(
    store: IssueStoreDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> User:
    """Dependency that resolves the bearer token to the acting user."""
    return _authenticate(store, credentials.credentials if credentials else None)


def get_stream_user(
    store: IssueStoreDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
    token: str | None = Query(default=None, description="API token for EventSource clients"),
) -> User:
    """Like get_current_user, but also accepts the token as a query parameter."""
    return _authenticate(store, credentials.credentials if credentials else token)


# Type aliases for dependency injection
CurrentUserDep = Annotated[User, Depends(get_current_user)]
StreamUserDep = Annotated[User, Depends(get_stream_user)]
