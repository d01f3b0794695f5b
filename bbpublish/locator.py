"""
Repository location parsing.

Turns a user-supplied location string into a ``RepositoryIdentity``. Two
forms are understood:

    bitbucket.example.com?project=TEAM&repo=svc
    https://bitbucket.example.com/projects/TEAM/repos/svc/browse

Query parameters win over path segments when both are present.
"""

import re
from urllib.parse import parse_qs, urlsplit

from bbpublish.config import IntegrationRegistry
from bbpublish.exceptions import InvalidLocation
from bbpublish.types.repos import RepositoryIdentity

_PATH_PATTERN = re.compile(r"/projects/(?P<project>[^/]+)/repos/(?P<repo>[^/]+)")


def _first(query: dict[str, list[str]], key: str) -> str | None:
    values = query.get(key)
    if not values:
        return None
    return values[0].strip() or None


def parse_repo_url(repo_url: str, registry: IntegrationRegistry) -> RepositoryIdentity:
    """
    Resolve a repository location string against the integration registry.

    Args:
        repo_url: Location string (scaffolder form or browse URL)
        registry: Known Bitbucket Server integrations

    Returns:
        RepositoryIdentity for the addressed repository

    Raises:
        InvalidLocation: If the host, project or repo cannot be determined
        ConfigurationError: If no integration is configured for the host
    """
    location = (repo_url or "").strip()
    if "://" not in location:
        location = f"https://{location}"

    try:
        parts = urlsplit(location)
        host = parts.netloc
    except ValueError as e:
        raise InvalidLocation(f"Invalid repo URL passed to publisher: {repo_url}, {e}") from e

    if "@" in host:
        host = host.rsplit("@", 1)[1]
    if not host:
        raise InvalidLocation(f"Invalid repo URL passed to publisher: {repo_url}, missing host")

    query = parse_qs(parts.query)
    project = _first(query, "project")
    repo = _first(query, "repo")

    match = _PATH_PATTERN.search(parts.path)
    if match:
        project = project or match.group("project")
        repo = repo or match.group("repo").removesuffix(".git")

    registry.get(host)

    if not project:
        raise InvalidLocation(
            f"Invalid URL provider was included in the repo URL to create {repo_url}, "
            "missing project"
        )
    if not repo:
        raise InvalidLocation(f"Invalid repo URL passed to publisher: {repo_url}, missing repo")

    return RepositoryIdentity(host=host, project=project, repo=repo)
