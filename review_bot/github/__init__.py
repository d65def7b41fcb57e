"""GitHub API integration."""

from .client import GitHubClient
from .models import Finding, PullRequest, ReviewComment, ReviewSummary

__all__ = ["GitHubClient", "Finding", "PullRequest", "ReviewComment", "ReviewSummary"]
