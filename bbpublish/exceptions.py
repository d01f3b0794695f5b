"""bbpublish exception classes."""

from typing import Any


class PublishError(Exception):
    """Base exception for all bbpublish errors."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


class ConfigurationError(PublishError):
    """Raised when integration configuration is invalid or missing."""

    def __init__(self, message: str) -> None:
        super().__init__("CONFIGURATION_ERROR", message)


class InvalidLocation(PublishError):
    """Raised when a repository location string cannot be resolved."""

    def __init__(self, message: str) -> None:
        super().__init__("INVALID_LOCATION", message)


class MissingCredentials(PublishError):
    """Raised when neither a token nor a username/password pair is configured."""

    def __init__(self, message: str) -> None:
        super().__init__("MISSING_CREDENTIALS", message)


class Cancelled(PublishError):
    """Raised when the caller's deadline expires or cancellation is requested."""

    def __init__(self, message: str) -> None:
        super().__init__("CANCELLED", message)


class ApiError(PublishError):
    """
    Raised when a Bitbucket Server REST call fails.

    Carries the HTTP status, status text and raw response body (when a
    response was received) so failures can be diagnosed without re-running.
    """

    code = "API_ERROR"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        status_text: str | None = None,
        body: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.status_text = status_text
        self.body = body

        detail = message
        if status_code is not None:
            detail = f"{detail}, {status_code} {status_text or ''}".rstrip()
        if body:
            detail = f"{detail}, {body}"
        super().__init__(type(self).code, detail)

    @classmethod
    def from_response(cls, message: str, response: Any) -> "ApiError":
        """Build the error from an httpx response."""
        return cls(
            message,
            status_code=response.status_code,
            status_text=response.reason_phrase,
            body=response.text,
        )


class RepositoryLookupFailed(ApiError):
    """Raised when repository details cannot be fetched."""

    code = "REPOSITORY_LOOKUP_FAILED"


class RepositoryCreateFailed(ApiError):
    """Raised when the server refuses to create a repository (other than 409)."""

    code = "REPOSITORY_CREATE_FAILED"


class LfsEnableFailed(ApiError):
    """Raised when large file storage cannot be enabled for a repository."""

    code = "LFS_ENABLE_FAILED"


class ReviewerLookupFailed(ApiError):
    """Raised when default reviewers cannot be fetched or parsed."""

    code = "REVIEWER_LOOKUP_FAILED"


class PullRequestCreateFailed(ApiError):
    """Raised when the server refuses to create a pull request."""

    code = "PULL_REQUEST_CREATE_FAILED"


class PullRequestResponseMalformed(ApiError):
    """Raised when a created pull request's response lacks expected links."""

    code = "PULL_REQUEST_RESPONSE_MALFORMED"


class LinkNotFound(ApiError):
    """Raised when a named link is missing from a response's link list."""

    code = "LINK_NOT_FOUND"
