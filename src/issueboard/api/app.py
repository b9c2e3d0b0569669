"""FastAPI application setup."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from issueboard import __version__
from issueboard.api.dependencies import (
    close_event_manager,
    close_issue_service,
    close_issue_store,
    init_event_manager,
    init_issue_service,
    init_issue_store,
)
from issueboard.api.models import APIResponse
from issueboard.api.routes import events, issues, notifications
from issueboard.issue_store import (
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
from issueboard.tracker import IssueService

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "issueboard.db"
DEFAULT_HEARTBEAT_SECONDS = 30.0

# Exception -> (status code, fixed message). None means use str(exc).
ERROR_RESPONSES: list[tuple[type[IssueStoreError], int, str | None]] = [
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED, None),
    (ValidationError, status.HTTP_400_BAD_REQUEST, None),
    (ForbiddenError, status.HTTP_403_FORBIDDEN, None),
    (IssueNotFoundError, status.HTTP_404_NOT_FOUND, "Issue not found"),
    (NotificationNotFoundError, status.HTTP_404_NOT_FOUND, "Notification not found"),
    (UserNotFoundError, status.HTTP_404_NOT_FOUND, "User not found"),
    (UserExistsError, status.HTTP_409_CONFLICT, "User with this email already exists"),
    (ConflictError, status.HTTP_409_CONFLICT, None),
    (TransientStoreError, status.HTTP_503_SERVICE_UNAVAILABLE, "Service temporarily unavailable"),
    (IssueStoreError, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"),
]


def _error_handler(status_code: int, message: str | None):  # noqa: ANN202
    async def handler(_request: Request, exc: Exception) -> JSONResponse:
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
        return JSONResponse(
            status_code=status_code,
            content=APIResponse[None](data=None, error=message or str(exc)).model_dump(),
            headers=headers,
        )

    return handler


def _field_name(loc: tuple) -> str:
    return ".".join(str(part) for part in loc if part != "body") or "body"


async def _request_validation_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = "; ".join(
        f"{_field_name(err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=APIResponse[None](data=None, error=f"Invalid request: {details}").model_dump(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Translate store and service errors into the standard envelope."""
    for exc_class, status_code, message in ERROR_RESPONSES:
        app.add_exception_handler(exc_class, _error_handler(status_code, message))
    app.add_exception_handler(RequestValidationError, _request_validation_handler)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    store = init_issue_store(app.state.db_path)
    event_manager = init_event_manager(app.state.heartbeat_interval)
    init_issue_service(IssueService(store=store, event_manager=event_manager))
    logger.info("IssueBoard API started (db=%s)", app.state.db_path)

    yield
    # Shutdown
    close_issue_service()
    close_event_manager()
    close_issue_store()
    logger.info("IssueBoard API stopped")


def create_app(
    db_path: str | None = None,
    heartbeat_interval: float | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_path: SQLite file. Falls back to ISSUEBOARD_DB_PATH, then
            'issueboard.db'.
        heartbeat_interval: Idle seconds before an event stream heartbeat.
            Falls back to ISSUEBOARD_HEARTBEAT_SECONDS, then 30.
    """
    app = FastAPI(
        title="IssueBoard API",
        description="REST API for IssueBoard - issue tracking with a live board",
        version=__version__,
        lifespan=lifespan,
    )

    # Store config for lifespan manager
    app.state.db_path = db_path or os.environ.get("ISSUEBOARD_DB_PATH", DEFAULT_DB_PATH)
    if heartbeat_interval is None:
        heartbeat_interval = float(
            os.environ.get("ISSUEBOARD_HEARTBEAT_SECONDS", DEFAULT_HEARTBEAT_SECONDS)
        )
    app.state.heartbeat_interval = heartbeat_interval

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(issues.router, prefix="/api")
    app.include_router(notifications.router, prefix="/api")
    app.include_router(events.router, prefix="/api")

    return app


# Default app instance
app = create_app()
