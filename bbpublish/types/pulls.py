"""Pull request-related data models."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Reviewer:
    """A pull request reviewer, identified by username."""

    username: str


@dataclass
class PullRequestSpec:
    """Input to pull request creation."""

    title: str
    source_ref: str  # branch name, qualified to refs/heads/... on the wire
    target_ref: str
    description: str | None = None
    reviewers: list[str] = field(default_factory=list)


@dataclass
class PullRequestResult:
    """Result of creating a pull request."""

    remote_url: str
    pull_request_url: str
    pull_request_id: str | None = None
