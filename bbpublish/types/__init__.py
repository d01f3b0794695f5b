"""bbpublish type definitions.

This module exports all data model types used by the SDK.
"""

from bbpublish.types.publish import (
    CloneResult,
    CommitAuthor,
    PublishResult,
    PublishWithPullRequestResult,
)
from bbpublish.types.pulls import PullRequestResult, PullRequestSpec, Reviewer
from bbpublish.types.repos import RepositoryIdentity, RepositoryRecord

__all__ = [
    # Repository types
    "RepositoryIdentity",
    "RepositoryRecord",
    # Pull request types
    "Reviewer",
    "PullRequestSpec",
    "PullRequestResult",
    # Publish types
    "CommitAuthor",
    "PublishResult",
    "CloneResult",
    "PublishWithPullRequestResult",
]
