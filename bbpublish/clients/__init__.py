"""bbpublish resource clients."""

from bbpublish.clients.pulls import PullsClient
from bbpublish.clients.repos import ReposClient
from bbpublish.clients.reviewers import ReviewersClient, merge_reviewers

__all__ = [
    "ReposClient",
    "ReviewersClient",
    "PullsClient",
    "merge_reviewers",
]
