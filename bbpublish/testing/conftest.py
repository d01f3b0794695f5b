"""
Pytest plugin for bbpublish testing fixtures.

This module re-exports all fixtures from fixtures.py so they can be
discovered by pytest. Add this to your top-level conftest.py:

    pytest_plugins = ["bbpublish.testing.conftest"]

Or import the fixtures directly:

    from bbpublish.testing.fixtures import fake_server, publisher
"""

# Re-export all fixtures for pytest auto-discovery
from bbpublish.testing.fixtures import (
    basic_integration_config,
    fake_server,
    integration_config,
    mock_git,
    publish_defaults,
    publisher,
    registry,
    workspace,
)

__all__ = [
    "integration_config",
    "basic_integration_config",
    "registry",
    "publish_defaults",
    "fake_server",
    "mock_git",
    "workspace",
    "publisher",
]
