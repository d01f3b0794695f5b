"""
Pytest fixtures for bbpublish testing.

Provides common fixtures for testing code that publishes through bbpublish.
"""

from collections.abc import Generator
from pathlib import Path

import pytest

from bbpublish.config import IntegrationConfig, IntegrationRegistry, PublishDefaults
from bbpublish.publisher import Publisher
from bbpublish.testing.mock import FakeBitbucketServer, MockGitHelper

TEST_HOST = "bitbucket.example.com"


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def integration_config() -> IntegrationConfig:
    """Integration config for the fake host, authenticated with a token."""
    return IntegrationConfig(host=TEST_HOST, token="test-token")


@pytest.fixture
def basic_integration_config() -> IntegrationConfig:
    """Integration config for the fake host, authenticated with username/password."""
    return IntegrationConfig(host=TEST_HOST, username="builder", password="s3cret")


@pytest.fixture
def registry(integration_config: IntegrationConfig) -> IntegrationRegistry:
    return IntegrationRegistry([integration_config])


@pytest.fixture
def publish_defaults() -> PublishDefaults:
    return PublishDefaults()


# ============================================================================
# Fake Server / Mock Git Fixtures
# ============================================================================


@pytest.fixture
def fake_server() -> FakeBitbucketServer:
    """
    Provide a FakeBitbucketServer for the test host.

    Example:
        ```python
        def test_reuse(fake_server, publisher):
            fake_server.on_create_repository("TEAM", "svc", status=409)
            fake_server.on_get_repository("TEAM", "svc", repo_id=42)
            assert publisher.create_repository(fake_server.location("TEAM", "svc")).repository_id == "42"
        ```
    """
    return FakeBitbucketServer(host=TEST_HOST)


@pytest.fixture
def mock_git() -> Generator[MockGitHelper, None, None]:
    git = MockGitHelper()
    yield git
    git.reset()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A staged workspace with a couple of generated files."""
    root = tmp_path / "workspace"
    (root / "service").mkdir(parents=True)
    (root / "README.md").write_text("# svc\n")
    (root / "service" / "main.py").write_text("print('hello')\n")
    return root


@pytest.fixture
def publisher(
    registry: IntegrationRegistry,
    workspace: Path,
    publish_defaults: PublishDefaults,
    fake_server: FakeBitbucketServer,
    mock_git: MockGitHelper,
) -> Publisher:
    """Publisher wired to the fake server and the mock git backend."""
    return Publisher(
        registry,
        workspace_path=workspace,
        defaults=publish_defaults,
        git_factory=lambda auth, deadline: mock_git,
        http_transport=fake_server.transport,
    )
