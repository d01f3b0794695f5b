"""
Configuration objects for bbpublish.

Integration settings and publish defaults are explicit, read-only objects
handed to the components that need them. Nothing in the SDK reads ambient
configuration on its own; use the ``from_env`` constructors to build them
from environment variables.
"""

import os
from collections.abc import Iterable
from dataclasses import dataclass

from bbpublish.exceptions import ConfigurationError


@dataclass(frozen=True)
class IntegrationConfig:
    """Connection settings for one Bitbucket Server host."""

    host: str
    api_base_url: str | None = None
    token: str | None = None
    username: str | None = None
    password: str | None = None

    def __post_init__(self) -> None:
        if not self.host:
            raise ConfigurationError("Integration host must not be empty")
        if not self.api_base_url:
            object.__setattr__(
                self, "api_base_url", f"https://{self.host}/rest/api/1.0"
            )
        else:
            object.__setattr__(self, "api_base_url", self.api_base_url.rstrip("/"))

    @property
    def rest_base_url(self) -> str:
        """
        Root of the server's REST plugins (``https://host/rest``).

        Derived by cutting ``api_base_url`` at its ``/api`` path segment, so
        the default reviewers and git-lfs plugins can be addressed next to
        the core API.
        """
        api_base_url = self.api_base_url or ""
        marker = api_base_url.rfind("/api")
        if marker == -1:
            return api_base_url
        tail = api_base_url[marker + len("/api"):]
        if tail and not tail.startswith("/"):
            return api_base_url
        return api_base_url[:marker]

    @property
    def api_version(self) -> str:
        """Version segment following ``/api`` (``1.0`` by default)."""
        api_base_url = self.api_base_url or ""
        marker = api_base_url.rfind("/api/")
        if marker == -1:
            return "1.0"
        return api_base_url[marker + len("/api/"):] or "1.0"

    @classmethod
    def from_env(cls, prefix: str = "BITBUCKET_SERVER") -> "IntegrationConfig":
        """
        Create an integration config from environment variables.

        Environment variables:
            <PREFIX>_HOST: Server host name, e.g. bitbucket.example.com (required)
            <PREFIX>_API_BASE_URL: REST API base (optional, default https://<host>/rest/api/1.0)
            <PREFIX>_TOKEN: HTTP access token (optional)
            <PREFIX>_USERNAME: Username for basic auth (optional)
            <PREFIX>_PASSWORD: Password for basic auth (optional)

        Raises:
            ConfigurationError: If the host variable is missing
        """
        host = os.environ.get(f"{prefix}_HOST")
        if not host:
            raise ConfigurationError(f"{prefix}_HOST environment variable not set")

        return cls(
            host=host,
            api_base_url=os.environ.get(f"{prefix}_API_BASE_URL") or None,
            token=os.environ.get(f"{prefix}_TOKEN") or None,
            username=os.environ.get(f"{prefix}_USERNAME") or None,
            password=os.environ.get(f"{prefix}_PASSWORD") or None,
        )


class IntegrationRegistry:
    """Read-only lookup of integration settings by host."""

    def __init__(self, configs: Iterable[IntegrationConfig] = ()) -> None:
        self._configs: dict[str, IntegrationConfig] = {}
        for config in configs:
            key = config.host.lower()
            if key in self._configs:
                raise ConfigurationError(
                    f"Duplicate integration configuration for host {config.host}"
                )
            self._configs[key] = config

    def by_host(self, host: str) -> IntegrationConfig | None:
        """Return the configuration for ``host``, or None if there is none."""
        return self._configs.get(host.lower())

    def get(self, host: str) -> IntegrationConfig:
        """
        Return the configuration for ``host``.

        Raises:
            ConfigurationError: If no integration is configured for the host
        """
        config = self.by_host(host)
        if config is None:
            raise ConfigurationError(
                f"No matching integration configuration for host {host}, "
                "please check your integrations config"
            )
        return config

    @property
    def hosts(self) -> list[str]:
        return [config.host for config in self._configs.values()]

    @classmethod
    def from_env(cls, prefix: str = "BITBUCKET_SERVER") -> "IntegrationRegistry":
        """Create a single-host registry from environment variables."""
        return cls([IntegrationConfig.from_env(prefix)])


@dataclass(frozen=True)
class PublishDefaults:
    """Fallbacks used when a caller omits commit message or author details."""

    commit_message: str = "commit by backstage"
    author_name: str = "Scaffolder"
    author_email: str = "scaffolder@backstage.io"

    @classmethod
    def from_env(cls) -> "PublishDefaults":
        """
        Create publish defaults from environment variables.

        Environment variables (all optional):
            BBPUBLISH_DEFAULT_COMMIT_MESSAGE
            BBPUBLISH_DEFAULT_AUTHOR_NAME
            BBPUBLISH_DEFAULT_AUTHOR_EMAIL
        """
        defaults = cls()
        return cls(
            commit_message=os.environ.get(
                "BBPUBLISH_DEFAULT_COMMIT_MESSAGE", defaults.commit_message
            ),
            author_name=os.environ.get(
                "BBPUBLISH_DEFAULT_AUTHOR_NAME", defaults.author_name
            ),
            author_email=os.environ.get(
                "BBPUBLISH_DEFAULT_AUTHOR_EMAIL", defaults.author_email
            ),
        )
