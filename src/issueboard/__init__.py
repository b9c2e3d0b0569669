"""IssueBoard - Issue tracking with live board synchronization."""

__version__ = "0.1.0"
