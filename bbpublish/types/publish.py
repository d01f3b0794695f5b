"""Publish-related data models."""

from dataclasses import dataclass
from pathlib import Path

from bbpublish.types.pulls import PullRequestResult
from bbpublish.types.repos import RepositoryRecord


@dataclass(frozen=True)
class CommitAuthor:
    """Identity recorded on commits."""

    name: str
    email: str


@dataclass
class PublishResult:
    """Result of pushing workspace content to a remote branch."""

    remote_url: str
    commit_hash: str | None  # None when there was nothing to commit


@dataclass
class CloneResult:
    """Result of the clone-then-branch flow."""

    remote_url: str
    repo_contents_url: str
    clone_path: Path


@dataclass
class PublishWithPullRequestResult:
    """Outputs of the full create, push and pull request pipeline."""

    repository: RepositoryRecord
    publish: PublishResult
    pull_request: PullRequestResult | None = None
