"""Pydantic schemas: GitHub wire payloads and sync read models."""

from .base import SchemaBase
from .github_api import (
    GitHubAccount,
    GitHubActor,
    GitHubCommit,
    GitHubContributor,
    GitHubIssue,
    GitHubLabel,
    GitHubOrganizationSummary,
    GitHubPullRequest,
    GitHubRepository,
    GitHubTimelineEvent,
)
from .sync import IntegrationRead, SyncProgress

__all__ = [
    # Base
    "SchemaBase",
    # GitHub API
    "GitHubAccount",
    "GitHubActor",
    "GitHubCommit",
    "GitHubContributor",
    "GitHubIssue",
    "GitHubLabel",
    "GitHubOrganizationSummary",
    "GitHubPullRequest",
    "GitHubRepository",
    "GitHubTimelineEvent",
    # Sync
    "IntegrationRead",
    "SyncProgress",
]
