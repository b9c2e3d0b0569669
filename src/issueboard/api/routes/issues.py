"""Issue endpoints."""

from fastapi import APIRouter, Query, status

from issueboard.api.dependencies import CurrentUserDep, IssueServiceDep
from issueboard.api.models import (
    APIResponse,
    AssignRequest,
    CommentCreate,
    IssueCreate,
    IssuePageResponse,
    IssueResponse,
    IssueStatsResponse,
    StatusUpdate,
    issue_page_to_response,
    issue_stats_to_response,
    issue_to_response,
)

router = APIRouter(prefix="/issues", tags=["issues"])


@router.post(
    "",
    response_model=APIResponse[IssueResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_issue(
    body: IssueCreate, user: CurrentUserDep, service: IssueServiceDep
) -> APIResponse[IssueResponse]:
    """File a new issue."""
    issue = service.create(
        user,
        title=body.title,
        description=body.description,
        category=body.category,
        priority=body.priority,
    )
    return APIResponse(data=issue_to_response(issue))


@router.get("", response_model=APIResponse[IssuePageResponse])
def list_issues(
    user: CurrentUserDep,
    service: IssueServiceDep,
    page: int = Query(default=1, ge=1, description="1-based page number"),
    limit: int = Query(default=100, ge=1, le=1000, description="Page size"),
) -> APIResponse[IssuePageResponse]:
    """List all issues, paginated (admin only)."""
    result = service.list_all(user, page=page, limit=limit)
    return APIResponse(data=issue_page_to_response(result))


@router.get("/my", response_model=APIResponse[list[IssueResponse]])
def list_my_issues(
    user: CurrentUserDep, service: IssueServiceDep
) -> APIResponse[list[IssueResponse]]:
    """List the caller's own issues."""
    issues = service.list_mine(user)
    return APIResponse(data=[issue_to_response(i) for i in issues])


@router.get("/stats", response_model=APIResponse[IssueStatsResponse])
def get_issue_stats(
    user: CurrentUserDep, service: IssueServiceDep
) -> APIResponse[IssueStatsResponse]:
    """Issue counts by status, priority and category."""
    stats = service.stats(user)
    return APIResponse(data=issue_stats_to_response(stats))


@router.get("/{issue_id}", response_model=APIResponse[IssueResponse])
def get_issue(
    issue_id: str, user: CurrentUserDep, service: IssueServiceDep
) -> APIResponse[IssueResponse]:
    """Get an issue by ID."""
    issue = service.get(user, issue_id)
    return APIResponse(data=issue_to_response(issue))


@router.put("/{issue_id}/status", response_model=APIResponse[IssueResponse])
def update_status(
    issue_id: str, body: StatusUpdate, user: CurrentUserDep, service: IssueServiceDep
) -> APIResponse[IssueResponse]:
    """Move an issue to another status (admin or assignee)."""
    issue = service.update_status(
        user, issue_id, body.status, expected_version=body.expected_version
    )
    return APIResponse(data=issue_to_response(issue))


@router.put("/{issue_id}/assign", response_model=APIResponse[IssueResponse])
def assign_issue(
    issue_id: str, body: AssignRequest, user: CurrentUserDep, service: IssueServiceDep
) -> APIResponse[IssueResponse]:
    """Assign an issue to a technician by name (admin only)."""
    issue = service.assign(user, issue_id, body.assigned_to)
    return APIResponse(data=issue_to_response(issue))


@router.post(
    "/{issue_id}/comment",
    response_model=APIResponse[IssueResponse],
    status_code=status.HTTP_201_CREATED,
)
def add_comment(
    issue_id: str, body: CommentCreate, user: CurrentUserDep, service: IssueServiceDep
) -> APIResponse[IssueResponse]:
    """Append a comment to an issue."""
    issue = service.add_comment(user, issue_id, body.text)
    return APIResponse(data=issue_to_response(issue))
