"""Pull requests resource client."""

from typing import TYPE_CHECKING, Any

from bbpublish.clients.reviewers import merge_reviewers
from bbpublish.exceptions import (
    LinkNotFound,
    PullRequestCreateFailed,
    PullRequestResponseMalformed,
)
from bbpublish.links import clone_url, self_url
from bbpublish.types.pulls import PullRequestResult, Reviewer

if TYPE_CHECKING:
    from bbpublish.clients.repos import ReposClient
    from bbpublish.clients.reviewers import ReviewersClient
    from bbpublish.transport import HTTPTransport


def branch_ref(branch: str) -> str:
    """Fully qualified ref name of a branch."""
    if branch.startswith("refs/"):
        return branch
    return f"refs/heads/{branch}"


def _ref_payload(project: str, repo: str, branch: str) -> dict[str, Any]:
    return {
        "id": branch_ref(branch),
        "type": "BRANCH",
        "repository": {
            "slug": repo,
            "project": {"key": project},
        },
    }


class PullsClient:
    """Client for pull request creation."""

    def __init__(
        self,
        transport: "HTTPTransport",
        repos: "ReposClient",
        reviewers: "ReviewersClient",
    ) -> None:
        """
        Initialize the pulls client.

        Args:
            transport: HTTP transport for making requests
            repos: Client used to look up the repository id
            reviewers: Client used to fetch required reviewers
        """
        self.transport = transport
        self.repos = repos
        self.reviewers = reviewers

    def create(
        self,
        project: str,
        repo: str,
        title: str,
        source_branch: str,
        target_branch: str,
        description: str | None = None,
        reviewers: list[str] | None = None,
    ) -> PullRequestResult:
        """
        Create a pull request with the required reviewers merged in.

        Args:
            project: Project key
            repo: Repository slug
            title: Pull request title
            source_branch: Branch containing changes
            target_branch: Branch to merge into
            description: Optional description (defaults to the title)
            reviewers: Usernames to request in addition to required reviewers

        Returns:
            PullRequestResult with the source repository clone URL and PR URL

        Raises:
            RepositoryLookupFailed: If the repository cannot be looked up
            ReviewerLookupFailed: If required reviewers cannot be fetched
            PullRequestCreateFailed: On any status other than 201 or on network failure
            PullRequestResponseMalformed: If the 201 response lacks expected links
        """
        repository = self.repos.get(project, repo)

        required = self.reviewers.get_required(
            project_key=project,
            repo_slug=repo,
            source_repo_id=repository.repository_id,
            source_ref_id=branch_ref(source_branch),
            target_repo_id=repository.repository_id,
            target_ref_id=branch_ref(target_branch),
        )
        merged = merge_reviewers(reviewers or [], required)

        body = self._build_payload(
            project, repo, title, description, source_branch, target_branch, merged
        )

        response = self.transport.request(
            "POST",
            f"/projects/{project}/repos/{repo}/pull-requests",
            error_cls=PullRequestCreateFailed,
            action="Unable to create pull request",
            body=body,
        )

        if response.status_code != 201:
            raise PullRequestCreateFailed.from_response(
                "Unable to create pull request", response
            )

        try:
            data = response.json()
            remote_url = clone_url(data["fromRef"]["repository"])
            pull_request_url = self_url(data)
        except (ValueError, KeyError, IndexError, TypeError, LinkNotFound) as e:
            raise PullRequestResponseMalformed(
                f"Unable to create pull request ({e!r})",
                status_code=response.status_code,
                status_text=response.reason_phrase,
                body=response.text,
            ) from e

        pull_request_id = data.get("id")
        return PullRequestResult(
            remote_url=remote_url,
            pull_request_url=pull_request_url,
            pull_request_id=None if pull_request_id is None else str(pull_request_id),
        )

    def _build_payload(
        self,
        project: str,
        repo: str,
        title: str,
        description: str | None,
        source_branch: str,
        target_branch: str,
        reviewers: list[Reviewer],
    ) -> dict[str, Any]:
        return {
            "title": title,
            "description": description if description is not None else title,
            "reviewers": [{"user": {"name": r.username}} for r in reviewers],
            "fromRef": _ref_payload(project, repo, source_branch),
            "toRef": _ref_payload(project, repo, target_branch),
        }
