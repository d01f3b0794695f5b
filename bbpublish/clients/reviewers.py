"""Default reviewers resource client."""

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from bbpublish.exceptions import ReviewerLookupFailed
from bbpublish.types.pulls import Reviewer

if TYPE_CHECKING:
    from bbpublish.config import IntegrationConfig
    from bbpublish.transport import HTTPTransport


def merge_reviewers(requested: Iterable[str], required: Iterable[Reviewer]) -> list[Reviewer]:
    """
    Merge caller-requested reviewers into the server's required reviewers.

    Required reviewers come first in server order; requested usernames follow
    in caller order, skipping any username already present.

    Example:
        >>> merge_reviewers(["bob", "carol"], [Reviewer("alice"), Reviewer("bob")])
        [Reviewer(username='alice'), Reviewer(username='bob'), Reviewer(username='carol')]
    """
    merged: list[Reviewer] = []
    seen: set[str] = set()

    for reviewer in required:
        if reviewer.username not in seen:
            seen.add(reviewer.username)
            merged.append(reviewer)

    for username in requested:
        if username and username not in seen:
            seen.add(username)
            merged.append(Reviewer(username=username))

    return merged


def _parse_reviewer(entry: Any) -> Reviewer:
    if not isinstance(entry, dict):
        raise TypeError(f"reviewer entry is not an object: {entry!r}")
    name = entry.get("name")
    if not isinstance(name, str) or not name:
        raise ValueError(f"reviewer entry has no name: {entry!r}")
    return Reviewer(username=name)


class ReviewersClient:
    """Client for the default-reviewers plugin."""

    def __init__(self, transport: "HTTPTransport", config: "IntegrationConfig") -> None:
        """
        Initialize the reviewers client.

        Args:
            transport: HTTP transport for making requests
            config: Integration settings of the target host
        """
        self.transport = transport
        self.config = config

    def get_required(
        self,
        project_key: str,
        repo_slug: str,
        source_repo_id: str,
        source_ref_id: str,
        target_repo_id: str,
        target_ref_id: str = "refs/heads/master",
    ) -> list[Reviewer]:
        """
        Get the reviewers the server mandates for a source/target ref pair.

        Args:
            project_key: Project key
            repo_slug: Repository slug
            source_repo_id: Id of the repository holding the source ref
            source_ref_id: Fully qualified source ref (refs/heads/...)
            target_repo_id: Id of the repository holding the target ref
            target_ref_id: Fully qualified target ref (default: refs/heads/master)

        Returns:
            Required reviewers in server order, without duplicates

        Raises:
            ReviewerLookupFailed: On a non-200 status, network failure, or a
                response that is not a list of named users
        """
        base = f"{self.config.rest_base_url}/default-reviewers/{self.config.api_version}"
        response = self.transport.request(
            "GET",
            f"{base}/projects/{project_key}/repos/{repo_slug}/reviewers",
            error_cls=ReviewerLookupFailed,
            action="Unable to get default reviewers",
            params={
                "sourceRepoId": source_repo_id,
                "sourceRefId": source_ref_id,
                "targetRepoId": target_repo_id,
                "targetRefId": target_ref_id,
            },
        )

        if response.status_code != 200:
            raise ReviewerLookupFailed.from_response(
                "Unable to get default reviewers", response
            )

        try:
            data = response.json()
            if not isinstance(data, list):
                raise TypeError(f"expected a list, got {type(data).__name__}")
            reviewers = [_parse_reviewer(entry) for entry in data]
        except (ValueError, TypeError) as e:
            raise ReviewerLookupFailed(
                f"Unexpected default reviewers response ({e})",
                status_code=response.status_code,
                status_text=response.reason_phrase,
                body=response.text,
            ) from e

        return merge_reviewers([], reviewers)
