"""Shared fixtures for the bbpublish test suite."""

from bbpublish.testing.conftest import (  # noqa: F401
    basic_integration_config,
    fake_server,
    integration_config,
    mock_git,
    publish_defaults,
    publisher,
    registry,
    workspace,
)
