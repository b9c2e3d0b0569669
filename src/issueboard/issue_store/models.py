"""SQLAlchemy models for the Issue Store."""

from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)


class IssueStatus(StrEnum):
    """Issue status enum. Also the board's column order."""

    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"


class IssueCategory(StrEnum):
    """Issue category enum."""

    BUG = "Bug"
    INFRASTRUCTURE = "Infrastructure"
    ACADEMIC = "Academic"
    OTHER = "Other"


class IssuePriority(StrEnum):
    """Issue priority enum."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class UserRole(StrEnum):
    """User role enum."""

    USER = "user"
    TECHNICIAN = "technician"
    ADMIN = "admin"


class NotificationKind(StrEnum):
    """Notification kind enum."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def generate_token() -> str:
    """Generate a new opaque API token."""
    return "ib_" + secrets.token_urlsafe(32)


def utcnow() -> datetime:
    """Naive UTC timestamp with microseconds, as stored in SQLite."""
    return datetime.now(UTC).replace(tzinfo=None)


def _in_clause(column: str, enum: type[StrEnum]) -> str:
    values = ", ".join(f"'{member.value}'" for member in enum)
    return f"{column} IN ({values})"


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class User(Base):
    """User model - the identities that act on issues."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    api_token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    def __init__(
        self,
        name: str,
        email: str,
        id: str | None = None,
        role: str = UserRole.USER.value,
        api_token: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.name = name
        self.email = email
        self.role = role
        self.api_token = api_token if api_token is not None else generate_token()

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def __repr__(self) -> str:
        return f"<User(id={self.id!r}, name={self.name!r}, role={self.role!r})>"


class Issue(Base):
    """Issue model - a ticket with status, assignment and a comment thread."""

    __tablename__ = "issues"
    __table_args__ = (
        CheckConstraint(_in_clause("status", IssueStatus), name="ck_issues_status"),
        CheckConstraint(_in_clause("category", IssueCategory), name="ck_issues_category"),
        CheckConstraint(_in_clause("priority", IssuePriority), name="ck_issues_priority"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    created_by: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    # Display name of the assignee, "" when unassigned
    assigned_to: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    creator: Mapped[User] = relationship("User", lazy="joined")
    comments: Mapped[list[Comment]] = relationship(
        "Comment",
        back_populates="issue",
        cascade="all, delete-orphan",
        order_by="Comment.seq",
        lazy="selectin",
    )

    def __init__(
        self,
        title: str,
        description: str,
        category: str,
        priority: str,
        created_by: str,
        id: str | None = None,
        status: str | None = None,
        assigned_to: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.title = title
        self.description = description
        self.category = category
        self.priority = priority
        self.status = status if status is not None else IssueStatus.OPEN.value
        self.created_by = created_by
        self.assigned_to = assigned_to

    @property
    def issue_status(self) -> IssueStatus:
        """Get status as IssueStatus enum."""
        return IssueStatus(self.status)

    def __repr__(self) -> str:
        return f"<Issue(id={self.id!r}, status={self.status!r}, version={self.version!r})>"


class Comment(Base):
    """Comment model - one entry of an issue's append-only thread."""

    __tablename__ = "comments"

    # Insertion order is the thread order
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    issue_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("issues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user: Mapped[str] = mapped_column(String(255), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    issue: Mapped[Issue] = relationship("Issue", back_populates="comments")

    def __init__(self, user: str, text: str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.user = user
        self.text = text

    def __repr__(self) -> str:
        return f"<Comment(seq={self.seq!r}, issue_id={self.issue_id!r}, user={self.user!r})>"


class Notification(Base):
    """Notification model - one alert in a recipient's inbox."""

    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    recipient_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    related_issue_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("issues.id"), nullable=True
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    def __init__(
        self,
        recipient_id: str,
        text: str,
        id: str | None = None,
        related_issue_id: str | None = None,
        kind: str = NotificationKind.INFO.value,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.recipient_id = recipient_id
        self.text = text
        self.related_issue_id = related_issue_id
        self.kind = kind
        self.is_read = False

    def __repr__(self) -> str:
        return (
            f"<Notification(id={self.id!r}, recipient_id={self.recipient_id!r}, "
            f"is_read={self.is_read!r})>"
        )


@dataclass
class IssuePage:
    """One page of the all-issues listing."""

    issues: list[Issue]
    page: int
    pages: int
    total: int


@dataclass
class IssueStats:
    """Issue counts grouped by status, priority and category."""

    total: int
    by_status: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)
    by_category: dict[str, int] = field(default_factory=dict)
