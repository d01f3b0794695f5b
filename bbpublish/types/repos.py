"""Repository-related data models."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RepositoryIdentity:
    """The host/project/repo triple addressing a remote repository."""

    host: str
    project: str
    repo: str


@dataclass
class RepositoryRecord:
    """Repository details returned by lookup or creation."""

    remote_url: str  # HTTP clone URL
    repo_contents_url: str  # browsable URL of the repository root
    repository_id: str
    # False when an existing repository was reused after a 409 on create
    created: bool = field(default=False, compare=False)
