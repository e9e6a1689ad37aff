"""Repository classes wrapping all database access.

One repository per model; each exposes natural-key lookups and upserts on
top of BaseRepository.
"""

from .base import BaseRepository
from .changelog import ChangelogRepository
from .commit import CommitRepository
from .integration import IntegrationRepository
from .issue import IssueRepository
from .organization import OrganizationRepository
from .progress import SyncProgressRepository
from .pull_request import PullRequestRepository
from .rate_limit import RateLimitRepository
from .repo import RepoRepository
from .user import UserRepository

__all__ = [
    "BaseRepository",
    "ChangelogRepository",
    "CommitRepository",
    "IntegrationRepository",
    "IssueRepository",
    "OrganizationRepository",
    "PullRequestRepository",
    "RateLimitRepository",
    "RepoRepository",
    "SyncProgressRepository",
    "UserRepository",
]
