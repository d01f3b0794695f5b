"""
bbpublish REST client.

Aggregates the resource clients for one Bitbucket Server host over a single
authorized transport.
"""

from typing import Any

import httpx

from bbpublish.auth import AuthContext, resolve_auth
from bbpublish.clients import PullsClient, ReposClient, ReviewersClient
from bbpublish.config import IntegrationConfig
from bbpublish.deadline import Deadline
from bbpublish.transport import HTTPTransport, RetryConfig


class BitbucketServerClient:
    """
    Client for the parts of the Bitbucket Server REST API used when publishing.

    Example:
        ```python
        from bbpublish import BitbucketServerClient, IntegrationConfig

        config = IntegrationConfig(host="bitbucket.example.com", token="...")
        with BitbucketServerClient.from_config(config) as client:
            record = client.repos.create("TEAM", "svc")
            pr = client.pulls.create(
                "TEAM", "svc", "Update", source_branch="feature/x", target_branch="master"
            )
        ```
    """

    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        config: IntegrationConfig,
        auth: AuthContext,
        timeout: float = DEFAULT_TIMEOUT,
        retry_config: RetryConfig | None = None,
        deadline: Deadline | None = None,
        http_transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: Integration settings of the target host
            auth: Resolved authorization
            timeout: Request timeout in seconds (default: 30.0)
            retry_config: Configuration for retry behavior (default: no retries)
            deadline: Optional deadline bounding every request
            http_transport: Optional httpx transport (test seam)
        """
        self.config = config
        self.auth = auth

        self._transport = HTTPTransport(
            base_url=config.api_base_url or "",
            authorization=auth.authorization,
            timeout=timeout,
            retry_config=retry_config,
            deadline=deadline,
            http_transport=http_transport,
        )

        self.repos = ReposClient(self._transport, config)
        self.reviewers = ReviewersClient(self._transport, config)
        self.pulls = PullsClient(self._transport, self.repos, self.reviewers)

    @classmethod
    def from_config(
        cls,
        config: IntegrationConfig,
        token: str | None = None,
        **kwargs: Any,
    ) -> "BitbucketServerClient":
        """
        Create a client, resolving credentials from the integration config.

        Raises:
            MissingCredentials: If no token or username/password is available
        """
        return cls(config, resolve_auth(config, token), **kwargs)

    @property
    def transport(self) -> HTTPTransport:
        """Get the underlying HTTP transport (for advanced use cases)."""
        return self._transport

    def close(self) -> None:
        """Close the client and release resources."""
        self._transport.close()

    def __enter__(self) -> "BitbucketServerClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
