"""Repositories resource client."""

from typing import TYPE_CHECKING, Any

import httpx

from bbpublish.exceptions import (
    ApiError,
    LfsEnableFailed,
    LinkNotFound,
    RepositoryCreateFailed,
    RepositoryLookupFailed,
)
from bbpublish.links import clone_url, self_url
from bbpublish.logging import get_logger
from bbpublish.types.repos import RepositoryRecord

if TYPE_CHECKING:
    from bbpublish.config import IntegrationConfig
    from bbpublish.transport import HTTPTransport

logger = get_logger()

VISIBILITIES = ("private", "public")


def parse_repository(
    response: httpx.Response,
    error_cls: type[ApiError],
    created: bool = False,
) -> RepositoryRecord:
    """
    Parse a repository payload into a RepositoryRecord.

    Raises:
        LinkNotFound: If the payload has no "http" clone link
        ApiError: (as error_cls) if the payload does not have the expected shape
    """
    try:
        data: dict[str, Any] = response.json()
        repository_id = data["id"]
        remote_url = clone_url(data)
        repo_contents_url = self_url(data)
    except LinkNotFound as e:
        raise LinkNotFound(
            e.message,
            status_code=response.status_code,
            status_text=response.reason_phrase,
            body=response.text,
        ) from e
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise error_cls(
            f"Unexpected repository response ({e!r})",
            status_code=response.status_code,
            status_text=response.reason_phrase,
            body=response.text,
        ) from e

    return RepositoryRecord(
        remote_url=remote_url,
        repo_contents_url=repo_contents_url,
        repository_id=str(repository_id),
        created=created,
    )


class ReposClient:
    """Client for repository lookup, creation and LFS toggling."""

    def __init__(self, transport: "HTTPTransport", config: "IntegrationConfig") -> None:
        """
        Initialize the repos client.

        Args:
            transport: HTTP transport for making requests
            config: Integration settings of the target host
        """
        self.transport = transport
        self.config = config

    def get(self, project: str, repo: str) -> RepositoryRecord:
        """
        Get repository details.

        Args:
            project: Project key
            repo: Repository slug

        Returns:
            RepositoryRecord with clone URL, contents URL and id

        Raises:
            RepositoryLookupFailed: On any status other than 200 or on network failure
            LinkNotFound: If the repository has no HTTP clone link
        """
        response = self.transport.request(
            "GET",
            f"/projects/{project}/repos/{repo}",
            error_cls=RepositoryLookupFailed,
            action="Unable to get repository details",
        )

        if response.status_code != 200:
            raise RepositoryLookupFailed.from_response(
                "Unable to get repository details", response
            )

        return parse_repository(response, RepositoryLookupFailed)

    def create(
        self,
        project: str,
        repo: str,
        description: str | None = None,
        default_branch: str = "master",
        visibility: str = "private",
    ) -> RepositoryRecord:
        """
        Create a repository, reusing it if one with the same name exists.

        A 409 from the server is not an error: the existing repository is
        looked up and returned with ``created=False``.

        Args:
            project: Project key
            repo: Repository name
            description: Optional repository description
            default_branch: Default branch name (default: "master")
            visibility: "private" or "public" (default: "private")

        Raises:
            ValueError: If visibility is not "private" or "public"
            RepositoryCreateFailed: On any status other than 201/409 or on network failure
        """
        if visibility not in VISIBILITIES:
            raise ValueError(f"visibility must be one of {VISIBILITIES}, got {visibility!r}")

        body: dict[str, Any] = {
            "name": repo,
            "description": description,
            "defaultBranch": default_branch,
            "public": visibility == "public",
        }

        response = self.transport.request(
            "POST",
            f"/projects/{project}/repos",
            error_cls=RepositoryCreateFailed,
            action="Unable to create repository",
            body=body,
        )

        if response.status_code == 409:
            logger.info(f"A repository with name({repo}) already exists.")
            return self.get(project, repo)

        if response.status_code != 201:
            raise RepositoryCreateFailed.from_response(
                "Unable to create repository", response
            )

        return parse_repository(response, RepositoryCreateFailed, created=True)

    def enable_lfs(self, project: str, repo: str) -> None:
        """
        Enable Git LFS for a repository.

        Raises:
            LfsEnableFailed: On a non-2xx status or on network failure
        """
        response = self.transport.request(
            "PUT",
            f"{self.config.rest_base_url}/git-lfs/admin/projects/{project}/repos/{repo}/enabled",
            error_cls=LfsEnableFailed,
            action="Failed to enable LFS in the repository",
        )

        if not 200 <= response.status_code < 300:
            raise LfsEnableFailed.from_response(
                "Failed to enable LFS in the repository", response
            )
