"""Shared pytest fixtures and configuration."""

import pytest

from issueboard.issue_store import IssueStore, User, UserRole


# Register custom markers
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: component interaction tests")


# Shared fixtures


@pytest.fixture
def store() -> IssueStore:
    """Create an in-memory IssueStore."""
    s = IssueStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def admin(store: IssueStore) -> User:
    """An admin user."""
    return store.create_user(name="Admin User", email="admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
def reporter(store: IssueStore) -> User:
    """A regular user who files issues."""
    return store.create_user(name="Uma", email="uma@example.com")


@pytest.fixture
def technician(store: IssueStore) -> User:
    """A technician named Bob."""
    return store.create_user(name="Bob", email="bob@example.com", role=UserRole.TECHNICIAN)


@pytest.fixture
def issue(store: IssueStore, reporter: User):
    """An open issue filed by the reporter."""
    return store.create_issue(
        title="Printer jam",
        description="The 3rd floor printer is jammed",
        category="Infrastructure",
        priority="High",
        created_by=reporter.id,
    )
