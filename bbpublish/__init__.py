"""bbpublish - publish workspace content and open pull requests on Bitbucket Server."""

from bbpublish.auth import (
    AuthContext,
    BasicCredential,
    Credential,
    TokenCredential,
    authorization_header,
    resolve_auth,
)
from bbpublish.client import BitbucketServerClient
from bbpublish.clients.reviewers import merge_reviewers
from bbpublish.config import IntegrationConfig, IntegrationRegistry, PublishDefaults
from bbpublish.deadline import Deadline
from bbpublish.exceptions import (
    ApiError,
    Cancelled,
    ConfigurationError,
    InvalidLocation,
    LfsEnableFailed,
    LinkNotFound,
    MissingCredentials,
    PublishError,
    PullRequestCreateFailed,
    PullRequestResponseMalformed,
    RepositoryCreateFailed,
    RepositoryLookupFailed,
    ReviewerLookupFailed,
)
from bbpublish.git import GitBackend, GitHelper
from bbpublish.locator import parse_repo_url
from bbpublish.logging import configure_logging, get_logger
from bbpublish.publisher import Publisher
from bbpublish.transport import HTTPTransport, RetryConfig
from bbpublish.types import (
    CloneResult,
    CommitAuthor,
    PublishResult,
    PublishWithPullRequestResult,
    PullRequestResult,
    PullRequestSpec,
    RepositoryIdentity,
    RepositoryRecord,
    Reviewer,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Orchestration
    "Publisher",
    "BitbucketServerClient",
    # Configuration
    "IntegrationConfig",
    "IntegrationRegistry",
    "PublishDefaults",
    "Deadline",
    # Location and auth
    "parse_repo_url",
    "resolve_auth",
    "authorization_header",
    "AuthContext",
    "Credential",
    "TokenCredential",
    "BasicCredential",
    # Reviewers
    "merge_reviewers",
    # Git
    "GitBackend",
    "GitHelper",
    # Types
    "RepositoryIdentity",
    "RepositoryRecord",
    "Reviewer",
    "PullRequestSpec",
    "PullRequestResult",
    "CommitAuthor",
    "PublishResult",
    "CloneResult",
    "PublishWithPullRequestResult",
    # Exceptions
    "PublishError",
    "ConfigurationError",
    "InvalidLocation",
    "MissingCredentials",
    "Cancelled",
    "ApiError",
    "RepositoryLookupFailed",
    "RepositoryCreateFailed",
    "LfsEnableFailed",
    "ReviewerLookupFailed",
    "PullRequestCreateFailed",
    "PullRequestResponseMalformed",
    "LinkNotFound",
    # Transport
    "HTTPTransport",
    "RetryConfig",
    # Logging
    "configure_logging",
    "get_logger",
]
