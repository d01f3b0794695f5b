#!/usr/bin/env python3
"""
bbpublish - Complete Publish Workflow Example

This example runs the whole pipeline against a Bitbucket Server:
1. Create (or reuse) the repository
2. New repository: push the workspace to its default branch
3. Existing repository: push to a feature branch and open a pull request
   with the required reviewers merged in

Configuration is read from the environment:
    BITBUCKET_SERVER_HOST, BITBUCKET_SERVER_TOKEN (or _USERNAME/_PASSWORD)
    BBPUBLISH_PROJECT, BBPUBLISH_REPO, BBPUBLISH_WORKSPACE
"""

import logging
import os
import sys

from bbpublish import (
    Deadline,
    IntegrationRegistry,
    PublishDefaults,
    PublishError,
    Publisher,
    configure_logging,
)

DEFAULT_BRANCH = "master"
FEATURE_BRANCH = "feature/example"


def main() -> int:
    """Run the complete publish workflow example."""
    print("=== bbpublish Example ===\n")

    configure_logging(level=logging.INFO)

    registry = IntegrationRegistry.from_env()
    host = registry.hosts[0]
    project = os.environ.get("BBPUBLISH_PROJECT", "TEAM")
    repo = os.environ.get("BBPUBLISH_REPO", "example-service")
    workspace = os.environ.get("BBPUBLISH_WORKSPACE", ".")
    location = f"{host}?project={project}&repo={repo}"

    publisher = Publisher(registry, workspace_path=workspace, defaults=PublishDefaults.from_env())
    deadline = Deadline(seconds=300)

    try:
        repository = publisher.create_repository(
            location,
            description="Created by the bbpublish example",
            default_branch=DEFAULT_BRANCH,
            deadline=deadline,
        )
        state = "created" if repository.created else "reused"
        print(f"1. Repository {state}: {repository.repo_contents_url}")

        if repository.created:
            # nothing to review against yet: seed the default branch
            pushed = publisher.push(location, branch=DEFAULT_BRANCH, deadline=deadline)
            print(f"2. Pushed commit {pushed.commit_hash or '(no changes)'} to {DEFAULT_BRANCH}")
        else:
            pushed = publisher.push(location, branch=FEATURE_BRANCH, deadline=deadline)
            print(f"2. Pushed commit {pushed.commit_hash or '(no changes)'} to {FEATURE_BRANCH}")

            pull_request = publisher.open_pull_request(
                location,
                title="Add generated content",
                source_branch=FEATURE_BRANCH,
                target_branch=DEFAULT_BRANCH,
                deadline=deadline,
            )
            print(f"3. Pull request: {pull_request.pull_request_url}")
    except PublishError as e:
        print(f"   Failed: {e}")
        return 1

    print("\n=== Example Complete ===")
    return 0


if __name__ == "__main__":
    sys.exit(main())
