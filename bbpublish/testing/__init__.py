"""bbpublish testing utilities.

Provides a fake Bitbucket Server, a mock git backend and fixtures for testing
applications that publish through bbpublish.
"""

from bbpublish.testing.mock import (
    FakeBitbucketServer,
    MockCall,
    MockGitHelper,
    pull_request_payload,
    repository_payload,
)

__all__ = [
    "FakeBitbucketServer",
    "MockGitHelper",
    "MockCall",
    "repository_payload",
    "pull_request_payload",
]
